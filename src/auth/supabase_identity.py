"""
Supabase identity provider for ShiftCover.

Wraps Supabase Auth (email + password) behind the IdentityProvider
protocol. Every Supabase failure is classified into the auth error
taxonomy before it leaves this module.
"""

import logging
import threading
from typing import Optional, Callable

from supabase import create_client, Client

from src.auth.errors import AuthError, InvalidCredentials, classify_auth_error
from src.models import Identity

logger = logging.getLogger(__name__)


class SupabaseIdentityProvider:
    """
    Identity provider backed by Supabase Auth.

    The client is created lazily from the URL and key unless one is injected.
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None
    ):
        """
        Initialize SupabaseIdentityProvider.

        Args:
            client: Optional pre-configured Supabase client
            supabase_url: Supabase project URL
            supabase_key: Supabase publishable key
        """
        self._client = client
        self._supabase_url = supabase_url
        self._supabase_key = supabase_key

        if client is None and not (supabase_url and supabase_key):
            raise ValueError(
                "Supabase URL and key required. "
                "Set SUPABASE_URL and SUPABASE_KEY environment variables."
            )

    def _get_client(self) -> Client:
        """Get or create Supabase client."""
        if self._client is None:
            self._client = create_client(self._supabase_url, self._supabase_key)
        return self._client

    # --- Authentication ---

    def sign_in_with_credentials(self, email: str, password: str) -> Identity:
        """Sign in with email and password."""
        try:
            response = self._get_client().auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            error = classify_auth_error(e)
            logger.error(f"Sign-in failed ({error.code}): {e}")
            raise error from e

        if not response or not response.user:
            logger.error("Sign-in returned no user")
            raise InvalidCredentials()

        return Identity.from_user(response.user)

    def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> Identity:
        """Create a new email/password account."""
        credentials = {"email": email, "password": password}
        if display_name:
            credentials["options"] = {"data": {"full_name": display_name}}

        try:
            response = self._get_client().auth.sign_up(credentials)
        except Exception as e:
            error = classify_auth_error(e)
            logger.error(f"Account creation failed ({error.code}): {e}")
            raise error from e

        if not response or not response.user:
            logger.error("Sign-up returned no user")
            raise AuthError("Failed to create account. Please try again.")

        if response.session is None:
            logger.info(f"Account {response.user.id} created; email confirmation pending")

        return Identity.from_user(response.user)

    def sign_out(self) -> None:
        """Sign out of the Supabase session."""
        try:
            self._get_client().auth.sign_out()
        except Exception as e:
            error = classify_auth_error(e)
            logger.warning(f"Sign-out failed ({error.code}): {e}")
            raise error from e

    # --- Session change notifications ---

    def current_identity(self) -> Optional[Identity]:
        """Return the identity of the persisted Supabase session, if any."""
        try:
            session = self._get_client().auth.get_session()
        except Exception as e:
            logger.warning(f"Could not read current session: {e}")
            return None
        if session and session.user:
            return Identity.from_user(session.user)
        return None

    def subscribe(self, on_change: Callable[[Optional[Identity]], None]) -> Callable[[], None]:
        """
        Subscribe to Supabase auth state changes.

        Reports the current identity immediately, then one call per auth event.
        """
        def handle_event(event, session) -> None:
            user = session.user if session else None
            identity = Identity.from_user(user) if user else None
            logger.debug(f"Auth event {event}: identity={identity.id if identity else None}")
            on_change(identity)

        subscription = self._get_client().auth.on_auth_state_change(handle_event)
        lock = threading.Lock()
        disposed = False

        def unsubscribe() -> None:
            nonlocal disposed
            with lock:
                if disposed:
                    return
                disposed = True
            try:
                subscription.unsubscribe()
                logger.info("Auth state subscription cancelled")
            except Exception as e:
                logger.warning(f"Failed to cancel auth state subscription: {e}")

        on_change(self.current_identity())
        return unsubscribe
