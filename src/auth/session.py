"""
Session Management for ShiftCover.

Owns the current member profile and orchestrates sign-in, sign-up,
sign-out and profile edits against the identity provider and the
profile store. Pages read the session through ``state`` / ``on_change``
and never write it.

One SessionManager is built at process start and injected wherever it
is needed; there is no module-level instance.
"""

import asyncio
import logging
from typing import Optional, Dict, Any, Callable, List, Mapping

from nicegui import run

from src.auth.errors import SessionError, StoreError, StoreReadFailure, classify_auth_error
from src.models import Identity, Profile, Role, SessionState
from src.storage.protocol import IdentityProvider, ProfileStore

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Manages the signed-in member's session.

    State:
    - current_profile: the resolved Profile, or None when signed out
    - resolving: True until the first identity notification has been
      resolved, and while sign-in, sign-up or a notification resolution
      is in flight

    Every state change bumps a generation counter; a resolution result is
    only applied if no newer operation has started since.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        profile_store: ProfileStore,
        fallback_role: Role = Role.PHYSICIAN
    ):
        """
        Initialize SessionManager.

        Args:
            identity_provider: External auth provider
            profile_store: Durable profile storage keyed by identity id
            fallback_role: Role given to identities that have no stored profile
        """
        self._provider = identity_provider
        self._store = profile_store
        self._fallback_role = fallback_role

        self._profile: Optional[Profile] = None
        self._awaiting_initial = True
        self._inflight = 0
        self._explicit_ops = 0
        self._generation = 0

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._started = False
        self._closed = False
        self._tasks: set = set()

        self._write_lock: Optional[asyncio.Lock] = None
        self._resolved_event: Optional[asyncio.Event] = None

        self._callbacks: Dict[str, List[Callable]] = {
            'change': [],
            'error': []
        }

    # --- Read model ---

    @property
    def current_profile(self) -> Optional[Profile]:
        """The signed-in member's profile, or None."""
        return self._profile

    @property
    def resolving(self) -> bool:
        """True while the session outcome is not settled yet."""
        return self._awaiting_initial or self._inflight > 0

    @property
    def is_authenticated(self) -> bool:
        return self._profile is not None

    @property
    def state(self) -> SessionState:
        """Immutable snapshot of the read model."""
        return SessionState(profile=self._profile, resolving=self.resolving)

    async def wait_resolved(self) -> SessionState:
        """Wait until ``resolving`` is False and return the settled state."""
        while self.resolving:
            await self._get_resolved_event().wait()
        return self.state

    # --- Listeners ---

    def on_change(self, callback: Callable[[SessionState], Any]) -> Callable[[], None]:
        """
        Register a callback for session state changes.

        Returns:
            Disposer that removes the callback
        """
        return self._add_callback('change', callback)

    def on_error(self, callback: Callable[[SessionError], Any]) -> Callable[[], None]:
        """
        Register a callback for failures that are not raised to the caller
        (profile sync failures, sign-out failures, store read failures).

        Returns:
            Disposer that removes the callback
        """
        return self._add_callback('error', callback)

    def _add_callback(self, event: str, callback: Callable) -> Callable[[], None]:
        self._callbacks[event].append(callback)

        def dispose() -> None:
            if callback in self._callbacks[event]:
                self._callbacks[event].remove(callback)

        return dispose

    def _emit(self, event: str, data: Any = None) -> None:
        """Emit an event to all registered callbacks."""
        for callback in list(self._callbacks.get(event, [])):
            try:
                result = callback(data)
                if asyncio.iscoroutine(result):
                    self._track(asyncio.ensure_future(result))
            except Exception as e:
                logger.error(f"Error in callback for {event}: {e}")

    def _publish(self) -> None:
        """Push the current snapshot to listeners and wake resolution waiters."""
        event = self._resolved_event
        if event is not None:
            if self.resolving:
                event.clear()
            else:
                event.set()
        self._emit('change', self.state)

    def _report_error(self, error: SessionError) -> None:
        self._emit('error', error)

    def _get_resolved_event(self) -> asyncio.Event:
        if self._resolved_event is None:
            self._resolved_event = asyncio.Event()
            if not self.resolving:
                self._resolved_event.set()
        return self._resolved_event

    def _get_write_lock(self) -> asyncio.Lock:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        return self._write_lock

    def _track(self, task: asyncio.Future) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background session task failed: {task.exception()!r}")

    # --- Lifecycle ---

    async def start(self) -> None:
        """
        Subscribe to identity provider notifications.

        Must be awaited on the event loop that owns this session.
        """
        if self._started or self._closed:
            return
        self._started = True
        self._loop = asyncio.get_running_loop()

        try:
            unsubscribe = await run.io_bound(self._provider.subscribe, self._on_identity_change)
        except Exception as e:
            logger.error(f"Failed to subscribe to auth state changes: {e}")
            self._awaiting_initial = False
            self._profile = None
            self._publish()
            raise

        if self._closed:
            unsubscribe()
            return
        self._unsubscribe = unsubscribe
        logger.info("Session manager subscribed to auth state changes")

    async def close(self) -> None:
        """Cancel the provider subscription and pending resolutions. Idempotent."""
        self._closed = True
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        try:
            if unsubscribe is not None:
                unsubscribe()
                logger.info("Session manager unsubscribed from auth state changes")
        finally:
            pending = [task for task in self._tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

    async def __aenter__(self) -> "SessionManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- Notifications ---

    def _on_identity_change(self, identity: Optional[Identity]) -> None:
        """Provider callback; may run on any thread."""
        loop = self._loop
        if loop is None or loop.is_closed() or self._closed:
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            self._handle_notification(identity)
        else:
            loop.call_soon_threadsafe(self._handle_notification, identity)

    def _handle_notification(self, identity: Optional[Identity]) -> None:
        if self._closed:
            return
        if self._explicit_ops:
            # sign_in/sign_up/sign_out in flight will set the outcome itself
            logger.debug(f"Ignoring auth notification during explicit operation (identity={identity.id if identity else None})")
            return

        self._generation += 1
        self._inflight += 1
        self._publish()
        self._track(asyncio.ensure_future(self._resolve_notification(identity, self._generation)))

    async def _resolve_notification(self, identity: Optional[Identity], generation: int) -> None:
        try:
            profile = await self._resolve(identity)
            if self._closed:
                return
            if not self._apply(generation, profile):
                logger.debug(f"Discarding stale notification resolution (generation {generation})")
        finally:
            self._inflight -= 1
            self._awaiting_initial = False
            if not self._closed:
                self._publish()

    # --- Resolution ---

    async def _resolve(self, identity: Optional[Identity]) -> Optional[Profile]:
        """Turn an identity into a Profile: stored record, else fallback."""
        if identity is None:
            return None

        try:
            profile = await run.io_bound(self._store.get, identity.id)
        except StoreReadFailure as e:
            logger.warning(f"Profile lookup for {identity.id} failed, using fallback: {e}")
            self._report_error(e)
            profile = None

        if profile is None:
            logger.info(f"No stored profile for {identity.id}; using fallback role {self._fallback_role.value}")
            return Profile.fallback(identity, self._fallback_role)
        return profile

    def _apply(self, generation: int, profile: Optional[Profile]) -> bool:
        if generation != self._generation:
            return False
        self._profile = profile
        return True

    def _begin_explicit(self, resolving: bool = True) -> int:
        self._generation += 1
        self._explicit_ops += 1
        if resolving:
            self._inflight += 1
            self._publish()
        return self._generation

    def _end_explicit(self, resolving: bool = True) -> None:
        self._explicit_ops -= 1
        if resolving:
            self._inflight -= 1
            self._awaiting_initial = False
        self._publish()

    async def _call_provider(self, method, *args):
        """Run a provider call off the loop; its failures become AuthErrors."""
        try:
            return await run.io_bound(method, *args)
        except SessionError:
            raise
        except Exception as e:
            raise classify_auth_error(e) from e

    # --- Operations ---

    async def sign_in(self, email: str, password: str) -> Profile:
        """
        Sign in with email and password and resolve the member profile.

        Raises:
            AuthError: InvalidCredentials, NetworkError, ... The session is
                cleared before the error propagates.
        """
        generation = self._begin_explicit()
        try:
            identity = await self._call_provider(self._provider.sign_in_with_credentials, email, password)
            profile = await self._resolve(identity)
            self._apply(generation, profile)
            logger.info(f"Signed in {identity.id} as {profile.role.value}")
            return profile
        except Exception as e:
            self._apply(generation, None)
            logger.warning(f"Sign-in failed: {e}")
            raise
        finally:
            self._end_explicit()

    async def sign_up(
        self,
        full_name: str,
        email: str,
        password: str,
        role,
        cpso_number: Optional[str] = None
    ) -> Profile:
        """
        Create an account and its profile record.

        Fields are used as given; form validation is the caller's job.

        Raises:
            AuthError: EmailInUse, WeakPassword, NetworkError, ...
            StoreWriteFailure: if the profile record could not be written
        """
        generation = self._begin_explicit()
        try:
            member_role = Role.parse(role)
            identity = await self._call_provider(self._provider.create_account, email, password, full_name)
            profile = Profile(
                id=identity.id,
                email=email,
                full_name=full_name,
                role=member_role,
                cpso_number=cpso_number,
            )
            await run.io_bound(self._store.put, identity.id, profile)
            self._apply(generation, profile)
            logger.info(f"Signed up {identity.id} as {member_role.value}")
            return profile
        except Exception as e:
            self._apply(generation, None)
            logger.warning(f"Sign-up failed: {e}")
            raise
        finally:
            self._end_explicit()

    async def sign_out(self) -> None:
        """
        Sign out. The local session is always cleared, even if the
        provider call fails; that failure goes to error listeners only.
        """
        generation = self._begin_explicit(resolving=False)
        try:
            await run.io_bound(self._provider.sign_out)
            logger.info("Signed out")
        except Exception as e:
            error = e if isinstance(e, SessionError) else classify_auth_error(e)
            logger.warning(f"Provider sign-out failed, clearing local session anyway: {e}")
            self._report_error(error)
        finally:
            if self._apply(generation, None):
                self._awaiting_initial = False
            self._end_explicit(resolving=False)

    async def update_profile(self, updates: Optional[Mapping[str, Any]] = None, **fields) -> bool:
        """
        Merge fields into the current profile and persist the full record.

        The merged profile is published immediately; the store write follows.
        ``id`` and ``role`` can't be changed. Writes run one at a time in
        call order.

        Returns:
            True if the record was persisted, False if there was no session
            or the write failed (reported to error listeners, not raised).
        """
        if self._profile is None:
            logger.debug("update_profile called without a signed-in member; ignoring")
            return False

        changes = dict(updates or {})
        changes.update(fields)
        merged = self._profile.merged(changes)
        if not self._explicit_ops:
            # a notification resolution already reading the store is now stale
            self._generation += 1
        self._profile = merged
        self._publish()

        async with self._get_write_lock():
            try:
                await run.io_bound(self._store.put, merged.id, merged)
            except StoreError as e:
                logger.error(f"Failed to persist profile {merged.id}: {e}")
                self._report_error(e)
                return False

        logger.info(f"Updated profile {merged.id}: {sorted(changes)}")
        return True
