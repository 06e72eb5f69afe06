"""
Logging configuration for ShiftCover.

Modules log through ``logging.getLogger(__name__)``; this only sets up the
root handler once for the running app.
"""

import logging

from src.config import get_log_level

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-8s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def setup_logging() -> None:
    """
    Configure root logging once. Idempotent.

    LOG_LEVEL (env or config.json) controls verbosity (default INFO).
    """
    level = logging.getLevelName(get_log_level())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    if root.handlers:
        # already configured (pytest, uvicorn, etc.)
        root.setLevel(level)
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.setLevel(level)
    root.addHandler(handler)
