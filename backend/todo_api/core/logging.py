"""Process-wide logging for the API, the migration env and maintenance scripts."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Chatty at INFO; session and auth events are what operators watch.
_QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "passlib")


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger once; later calls keep the existing handlers."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level_name)
        return

    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))
