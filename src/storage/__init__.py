"""
Storage backends for ShiftCover profiles.

Supports:
- LocalProfileStore: JSON files on disk (development)
- SupabaseProfileStore: Supabase PostgreSQL table
"""

from src.storage.protocol import IdentityProvider, ProfileStore
from src.storage.local_profiles import LocalProfileStore
from src.storage.factory import create_profile_store, create_identity_provider, get_store_backend_type

__all__ = [
    'IdentityProvider',
    'ProfileStore',
    'LocalProfileStore',
    'create_profile_store',
    'create_identity_provider',
    'get_store_backend_type',
]
