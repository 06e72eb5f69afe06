"""
Error taxonomy for ShiftCover sessions.

Provider and store adapters convert library exceptions into these types
at the boundary, so the session manager and pages never inspect raw
Supabase errors. A missing profile is not an error: stores return None.
"""

from typing import Optional


class SessionError(Exception):
    """Base class for session failures. ``message`` is safe to show users."""

    code = "unknown_error"
    default_message = "Something went wrong. Please try again."

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        self.message = message or self.default_message
        self.cause = cause
        super().__init__(self.message)


class AuthError(SessionError):
    """Identity provider failure."""
    code = "auth_error"
    default_message = "Authentication failed. Please try again."


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    default_message = "Invalid email or password."


class EmailInUse(AuthError):
    code = "email_in_use"
    default_message = "This email is already registered."


class WeakPassword(AuthError):
    code = "weak_password"
    default_message = "Password must be at least 6 characters."


class NetworkError(AuthError):
    code = "network_error"
    default_message = "Could not reach the authentication service. Check your connection."


class StoreError(SessionError):
    """Durable profile store failure."""
    code = "store_error"
    default_message = "Could not reach profile storage."


class StoreReadFailure(StoreError):
    code = "store_read_failure"
    default_message = "Failed to load your profile."


class StoreWriteFailure(StoreError):
    code = "store_write_failure"
    default_message = "Failed to save your profile. Please try again."


# Supabase Auth error codes -> taxonomy
_CODE_MAP = {
    "invalid_credentials": InvalidCredentials,
    "invalid_grant": InvalidCredentials,
    "user_not_found": InvalidCredentials,
    "email_not_confirmed": InvalidCredentials,
    "user_already_exists": EmailInUse,
    "email_exists": EmailInUse,
    "weak_password": WeakPassword,
}

_NETWORK_TYPE_HINTS = ("retryable", "connect", "timeout", "network", "transport")


def classify_auth_error(exc: BaseException) -> AuthError:
    """
    Map an exception raised by the identity provider to the taxonomy.

    Looks at the Supabase error code first, then the exception type and
    HTTP status, then the message text.
    """
    if isinstance(exc, AuthError):
        return exc

    code = getattr(exc, "code", None)
    if isinstance(code, str) and code in _CODE_MAP:
        return _CODE_MAP[code](cause=exc)

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return NetworkError(cause=exc)
    type_name = type(exc).__name__.lower()
    if "invalidcredentials" in type_name:
        return InvalidCredentials(cause=exc)
    if "weakpassword" in type_name:
        return WeakPassword(cause=exc)
    if any(hint in type_name for hint in _NETWORK_TYPE_HINTS):
        return NetworkError(cause=exc)

    error_msg = str(exc).lower()
    if "already registered" in error_msg or "already exists" in error_msg:
        return EmailInUse(cause=exc)
    if "password" in error_msg and ("weak" in error_msg or "at least" in error_msg):
        return WeakPassword(cause=exc)
    if "invalid login credentials" in error_msg or "invalid credentials" in error_msg:
        return InvalidCredentials(cause=exc)

    status = getattr(exc, "status", None)
    if status in (400, 401):
        return InvalidCredentials(cause=exc)

    return AuthError(cause=exc)
