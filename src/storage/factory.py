"""
Backend Factory for ShiftCover.

Creates the identity provider and profile store from configuration.
When both talk to Supabase they share one client, so profile reads and
writes run under the signed-in user's session (Row Level Security).
"""

import logging
from pathlib import Path
from typing import Optional, Union, TYPE_CHECKING

from supabase import create_client, Client

from src.config import (
    get_supabase_credentials,
    get_profile_store_backend,
    get_profiles_table,
    get_fallback_role,
)
from src.models import Role
from src.paths import ensure_profiles_dir
from src.storage.local_profiles import LocalProfileStore

if TYPE_CHECKING:
    from src.auth.supabase_identity import SupabaseIdentityProvider
    from src.storage.protocol import ProfileStore

logger = logging.getLogger(__name__)


def get_store_backend_type() -> str:
    """
    Get the profile store backend type.

    Returns:
        'local' or 'supabase'
    """
    return get_profile_store_backend()


def get_configured_fallback_role() -> Role:
    """Get the configured fallback role, defaulting to Physician if invalid."""
    value = get_fallback_role()
    try:
        return Role.parse(value)
    except ValueError:
        logger.warning(f"Invalid fallback_role '{value}' in config, using {Role.PHYSICIAN.value}")
        return Role.PHYSICIAN


def create_supabase_client() -> Client:
    """
    Create a Supabase client from config/environment.

    Raises:
        ValueError: if the URL or key is not configured
    """
    supabase_url, supabase_key = get_supabase_credentials()
    if not supabase_url or not supabase_key:
        raise ValueError(
            "Supabase URL and key required. "
            "Set SUPABASE_URL and SUPABASE_KEY environment variables or add them to config.json."
        )
    return create_client(supabase_url, supabase_key)


def create_identity_provider(client: Optional[Client] = None) -> "SupabaseIdentityProvider":
    """
    Create the identity provider.

    Args:
        client: Optional Supabase client to share with the profile store

    Returns:
        SupabaseIdentityProvider instance
    """
    from src.auth.supabase_identity import SupabaseIdentityProvider

    return SupabaseIdentityProvider(client=client or create_supabase_client())


def create_profile_store(
    force_backend: Optional[str] = None,
    client: Optional[Client] = None,
    profiles_dir: Optional[Union[str, Path]] = None
) -> "ProfileStore":
    """
    Create a profile store instance.

    Args:
        force_backend: Override the configured backend type
        client: Optional Supabase client (for the supabase backend)
        profiles_dir: Override the directory used by the local backend

    Returns:
        ProfileStore instance (LocalProfileStore or SupabaseProfileStore)
    """
    backend_type = force_backend or get_store_backend_type()
    fallback_role = get_configured_fallback_role()

    if backend_type == "supabase":
        from src.storage.supabase_profiles import SupabaseProfileStore

        logger.info(f"Using Supabase profile store (table '{get_profiles_table()}')")
        return SupabaseProfileStore(
            client=client or create_supabase_client(),
            table=get_profiles_table(),
            fallback_role=fallback_role
        )

    if backend_type != "local":
        raise ValueError(f"Unknown profile store backend: {backend_type}")

    directory = Path(profiles_dir) if profiles_dir else ensure_profiles_dir()
    logger.info(f"Using local profile store at {directory}")
    return LocalProfileStore(directory, fallback_role=fallback_role)
