"""
Supabase Profile Store for ShiftCover.

Implements the ProfileStore protocol on a Supabase PostgreSQL table
(``profiles`` by default), one row per identity id.
"""

import logging
from typing import Optional

from supabase import create_client, Client

from src.auth.errors import StoreReadFailure, StoreWriteFailure
from src.models import Profile, Role

logger = logging.getLogger(__name__)


class SupabaseProfileStore:
    """
    Cloud profile storage using a Supabase table.

    Row Level Security is expected to restrict each user to their own row,
    so the client should be the one that signed the user in.
    """

    def __init__(
        self,
        client: Optional[Client] = None,
        table: str = "profiles",
        supabase_url: Optional[str] = None,
        supabase_key: Optional[str] = None,
        fallback_role: Role = Role.PHYSICIAN
    ):
        """
        Initialize SupabaseProfileStore.

        Args:
            client: Optional pre-configured Supabase client (shared with auth)
            table: Table holding profile rows
            supabase_url: Supabase project URL, used if no client is given
            supabase_key: Supabase publishable key, used if no client is given
            fallback_role: Role for rows whose stored role is unrecognised
        """
        if client:
            self._client = client
        else:
            if not supabase_url or not supabase_key:
                raise ValueError(
                    "Supabase URL and key required. "
                    "Set SUPABASE_URL and SUPABASE_KEY environment variables."
                )
            self._client = create_client(supabase_url, supabase_key)

        self._table = table
        self._fallback_role = fallback_role

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "supabase"

    def get(self, profile_id: str) -> Optional[Profile]:
        """Fetch the profile row for an identity, or None if there is none."""
        try:
            response = self._client.table(self._table)\
                .select("*")\
                .eq("id", profile_id)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Failed to load profile {profile_id}: {e}")
            raise StoreReadFailure(cause=e) from e

        rows = response.data if response else None
        if not rows:
            logger.debug(f"No profile row for {profile_id}")
            return None

        return Profile.from_record(rows[0], fallback_role=self._fallback_role)

    def put(self, profile_id: str, profile: Profile) -> None:
        """Upsert the full profile row."""
        row = profile.to_record()
        row["id"] = profile_id

        try:
            self._client.table(self._table).upsert(row).execute()
        except Exception as e:
            logger.error(f"Failed to save profile {profile_id}: {e}")
            raise StoreWriteFailure(cause=e) from e

        logger.debug(f"Saved profile {profile_id}")
