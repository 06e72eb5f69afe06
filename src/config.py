"""
Configuration management for ShiftCover.

Handles persistent configuration including:
- Supabase project URL and key
- Which profile store backend to use
- Session policy defaults (fallback role)

Config is stored in config.json next to the executable/project root.
Environment variables always take priority over the file.
"""

import json
import logging
import os
from typing import Optional

from src.paths import get_config_path

logger = logging.getLogger(__name__)

DEFAULT_PROFILES_TABLE = "profiles"
DEFAULT_FALLBACK_ROLE = "Physician"
DEFAULT_LOG_LEVEL = "INFO"

STORE_BACKENDS = ("local", "supabase")


def load_config() -> dict:
    """Load configuration from config.json."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config at {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    config_path = get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _get_setting(env_var: str, config_key: str, default: Optional[str] = None) -> Optional[str]:
    """Environment first, then config.json, then the default."""
    value = os.environ.get(env_var)
    if value:
        return value
    return load_config().get(config_key, default)


def get_supabase_credentials() -> tuple[Optional[str], Optional[str]]:
    """
    Get the Supabase project URL and publishable key.

    Priority:
    1. Environment variables SUPABASE_URL / SUPABASE_KEY
    2. Stored in config.json (supabase_url / supabase_key)
    """
    return (
        _get_setting("SUPABASE_URL", "supabase_url"),
        _get_setting("SUPABASE_KEY", "supabase_key"),
    )


def has_supabase_credentials() -> bool:
    """Check whether both Supabase settings are present."""
    url, key = get_supabase_credentials()
    return bool(url) and bool(key)


def set_supabase_credentials(url: str, key: str) -> None:
    """Save the Supabase URL and key to config.json."""
    config = load_config()
    config["supabase_url"] = url
    config["supabase_key"] = key
    save_config(config)


def get_profile_store_backend() -> str:
    """
    Get the configured profile store backend ('local' or 'supabase').

    Defaults to 'supabase' when credentials are configured, otherwise 'local'.
    """
    backend = _get_setting("SHIFTCOVER_PROFILE_STORE", "profile_store")
    if backend:
        backend = backend.strip().lower()
        if backend in STORE_BACKENDS:
            return backend
        logger.warning(f"Unknown profile_store '{backend}', falling back to default")
    return "supabase" if has_supabase_credentials() else "local"


def get_profiles_table() -> str:
    """Get the name of the Supabase table holding profile rows."""
    return _get_setting("SHIFTCOVER_PROFILES_TABLE", "profiles_table", DEFAULT_PROFILES_TABLE)


def get_fallback_role() -> str:
    """Get the role assigned to identities whose profile record is missing."""
    return _get_setting("SHIFTCOVER_FALLBACK_ROLE", "fallback_role", DEFAULT_FALLBACK_ROLE)


def get_log_level() -> str:
    """Get the configured log level name."""
    return (_get_setting("LOG_LEVEL", "log_level", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).strip().upper()
