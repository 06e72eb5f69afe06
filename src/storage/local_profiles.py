"""
Local file Profile Store for ShiftCover.

Implements the ProfileStore protocol with one JSON file per profile.
Used for development and offline demos; the file naming follows the
``userProfile:<id>`` key the web client kept in browser storage.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from src.auth.errors import StoreWriteFailure
from src.models import Profile, Role

logger = logging.getLogger(__name__)

FILE_PREFIX = "userProfile_"


class LocalProfileStore:
    """
    Local file-based profile storage.

    Structure:
    - {profiles_dir}/userProfile_{id}.json: one profile record per file
    """

    def __init__(self, profiles_dir: Union[str, Path], fallback_role: Role = Role.PHYSICIAN):
        """
        Initialize LocalProfileStore.

        Args:
            profiles_dir: Directory holding the profile files
            fallback_role: Role for records whose stored role is unrecognised
        """
        self.profiles_dir = Path(profiles_dir)
        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        self._fallback_role = fallback_role

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier."""
        return "local"

    def _path_for(self, profile_id: str) -> Path:
        safe_id = "".join(c for c in profile_id if c.isalnum() or c in "-_")
        if not safe_id:
            raise ValueError(f"Invalid profile id: {profile_id!r}")
        return self.profiles_dir / f"{FILE_PREFIX}{safe_id}.json"

    def get(self, profile_id: str) -> Optional[Profile]:
        """Load a profile file. Returns None if missing or unreadable."""
        path = self._path_for(profile_id)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                record = json.load(f)
            if not isinstance(record, dict):
                raise TypeError(f"expected a JSON object, got {type(record).__name__}")
            return Profile.from_record(record, fallback_role=self._fallback_role)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to load profile file {path}: {e}")
            return None

    def put(self, profile_id: str, profile: Profile) -> None:
        """Write the full profile, replacing the file atomically."""
        try:
            path = self._path_for(profile_id)
            record = profile.to_record()
            record["id"] = profile_id

            fd, tmp_name = tempfile.mkstemp(dir=self.profiles_dir, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(record, f, indent=2, ensure_ascii=False)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Failed to save profile {profile_id}: {e}")
            raise StoreWriteFailure(cause=e) from e
