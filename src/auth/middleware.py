"""
Authentication Middleware for ShiftCover.

Provides a decorator for protecting pages and helpers for reading the
current member from an injected SessionManager.
"""

import functools
import logging
from typing import Optional, Callable

from nicegui import ui

from src.auth.session import SessionManager
from src.models import Profile

logger = logging.getLogger(__name__)


def get_current_profile(session: SessionManager) -> Optional[Profile]:
    """
    Get the signed-in member's profile.

    Returns:
        Profile or None if not authenticated (or still resolving)
    """
    if session.resolving:
        return None
    return session.current_profile


def is_authenticated(session: SessionManager) -> bool:
    """Check if a member is signed in and the session is settled."""
    return get_current_profile(session) is not None


def require_auth(session: SessionManager, redirect_to: str = "/"):
    """
    Decorator to require a signed-in member for a page.

    Waits for an in-flight resolution to settle before deciding.

    Usage:
        @ui.page('/profile')
        @require_auth(session)
        def profile_page():
            ...

    Args:
        session: The app's SessionManager
        redirect_to: URL to redirect to if not authenticated
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            state = await session.wait_resolved()
            if not state.is_authenticated:
                logger.debug(f"Unauthenticated access to {func.__name__}, redirecting to {redirect_to}")
                ui.navigate.to(redirect_to)
                return

            result = func(*args, **kwargs)
            if hasattr(result, '__await__'):
                return await result
            return result

        return wrapper
    return decorator
