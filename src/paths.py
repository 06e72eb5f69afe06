"""
Filesystem locations for ShiftCover.

config.json and the local profile records (db/profiles/) sit in the
project root, or next to the executable in a frozen build.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """Directory that holds config.json and db/."""
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    return Path(__file__).parent.parent


def get_config_path() -> Path:
    """Path to config.json (Supabase settings, profile store backend, ...)."""
    return get_app_dir() / "config.json"


def ensure_profiles_dir() -> Path:
    """Return db/profiles/, creating it if needed."""
    profiles_dir = get_app_dir() / "db" / "profiles"
    profiles_dir.mkdir(parents=True, exist_ok=True)
    return profiles_dir
