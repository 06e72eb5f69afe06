"""
Form validation for ShiftCover auth pages.

These checks run in the pages before calling the session manager,
which itself passes fields through untouched.
"""

from typing import Optional

from src.auth.errors import SessionError, AuthError, StoreWriteFailure, classify_auth_error
from src.models import Role, SignupData

MIN_PASSWORD_LENGTH = 6


def validate_login(email: Optional[str], password: Optional[str]) -> tuple[bool, str]:
    """
    Validate the sign-in form.

    Returns:
        (is_valid, message) tuple
    """
    if not (email or "").strip() or not password:
        return False, "Please enter email and password"
    return True, ""


def validate_signup(data: SignupData) -> tuple[bool, str]:
    """
    Validate the sign-up form.

    Returns:
        (is_valid, message) tuple
    """
    if not data.full_name or not data.email or not data.password or not data.role:
        return False, "Please fill in all required fields"

    if data.password != data.confirm_password:
        return False, "Passwords do not match"

    if len(data.password) < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"

    try:
        role = Role.parse(data.role)
    except ValueError:
        return False, "Please select a valid role"

    if role.requires_cpso and not (data.cpso_number or "").strip():
        return False, "CPSO Number is required for Physicians and Surgeons"

    return True, ""


def login_error_message(error: BaseException) -> str:
    """User-facing message for a failed sign-in."""
    if not isinstance(error, SessionError):
        error = classify_auth_error(error)
    return error.message


def signup_error_message(error: BaseException) -> str:
    """User-facing message for a failed sign-up."""
    if isinstance(error, StoreWriteFailure):
        return "Your account was created but your profile could not be saved. Please sign in and update your profile."
    if not isinstance(error, SessionError):
        error = classify_auth_error(error)
    if type(error) is AuthError:
        return "Failed to create account. Please try again."
    return error.message
