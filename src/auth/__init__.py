"""
Authentication module for ShiftCover.

Provides the session manager, the Supabase identity provider,
the error taxonomy and the page guard.
"""

from src.auth.errors import (
    SessionError,
    AuthError,
    InvalidCredentials,
    EmailInUse,
    WeakPassword,
    NetworkError,
    StoreError,
    StoreReadFailure,
    StoreWriteFailure,
)
from src.auth.session import SessionManager
from src.auth.middleware import require_auth, get_current_profile, is_authenticated
from src.auth.validation import validate_login, validate_signup

__all__ = [
    'SessionManager',
    'SessionError',
    'AuthError',
    'InvalidCredentials',
    'EmailInUse',
    'WeakPassword',
    'NetworkError',
    'StoreError',
    'StoreReadFailure',
    'StoreWriteFailure',
    'require_auth',
    'get_current_profile',
    'is_authenticated',
    'validate_login',
    'validate_signup',
]
