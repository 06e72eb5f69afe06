"""
NiceGUI application entry point for ShiftCover.

Builds the single SessionManager for this process, ties its auth
subscription to the app lifecycle, and guards member-only routes.
"""

import logging
import sys

from dotenv import load_dotenv
from nicegui import ui, app

load_dotenv()

from src.logging_setup import setup_logging
from src.auth.session import SessionManager
from src.auth.middleware import require_auth
from src.storage.factory import (
    create_supabase_client,
    create_identity_provider,
    create_profile_store,
    get_configured_fallback_role,
    get_store_backend_type,
)

setup_logging()
logger = logging.getLogger(__name__)


def build_session() -> SessionManager:
    """Create the process-wide SessionManager from configuration."""
    client = create_supabase_client()
    store_client = client if get_store_backend_type() == "supabase" else None
    return SessionManager(
        identity_provider=create_identity_provider(client=client),
        profile_store=create_profile_store(client=store_client),
        fallback_role=get_configured_fallback_role(),
    )


session = build_session()
app.on_startup(session.start)
app.on_shutdown(session.close)


@ui.page('/dashboard')
@require_auth(session)
def dashboard_page():
    """Member landing page."""
    profile = session.current_profile
    ui.label(f'Welcome back, {profile.full_name or profile.email}').classes('text-2xl font-bold')
    ui.label(profile.role.value).classes('text-gray-400')


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='ShiftCover',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
    )
