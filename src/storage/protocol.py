"""
External collaborator protocols for ShiftCover.

The session manager only talks to the identity provider and the profile
store through these interfaces. Supabase and local-file implementations
conform to them; tests use mocks.

All methods are blocking; the session manager runs them off the event loop.
"""

from typing import Protocol, Callable, Optional, runtime_checkable

from src.models import Identity, Profile


@runtime_checkable
class IdentityProvider(Protocol):
    """
    Protocol for the external authentication provider.

    Every failure is raised as an ``AuthError`` subclass
    (InvalidCredentials, EmailInUse, WeakPassword, NetworkError).
    """

    def sign_in_with_credentials(self, email: str, password: str) -> Identity:
        """Verify credentials and return the signed-in identity."""
        ...

    def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        """Create a new account and return its freshly minted identity."""
        ...

    def sign_out(self) -> None:
        """Invalidate the provider session."""
        ...

    def subscribe(self, on_change: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        """
        Subscribe to session changes.

        ``on_change`` is called once right away with the current identity
        (or None), then on every change, possibly from another thread.

        Returns:
            Disposer that cancels the subscription. Safe to call twice.
        """
        ...


@runtime_checkable
class ProfileStore(Protocol):
    """
    Protocol for durable profile storage keyed by identity id.

    No transactions and no concurrency tokens: ``put`` always overwrites.
    """

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('local' or 'supabase')."""
        ...

    def get(self, profile_id: str) -> Optional[Profile]:
        """
        Load a profile.

        Returns:
            The stored Profile, or None if there is no record.

        Raises:
            StoreReadFailure: if the store could not be reached.
        """
        ...

    def put(self, profile_id: str, profile: Profile) -> None:
        """
        Write the full profile record, replacing any existing one.

        Raises:
            StoreWriteFailure: if the write did not go through.
        """
        ...
