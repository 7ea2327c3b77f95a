"""Centralized logging configuration."""

import logging
from typing import Optional

from config import settings

# Loggers that are chatty at INFO; yfinance pulls in peewee for its tz cache.
_QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "httpx",
    "httpcore",
    "urllib3",
    "yfinance",
    "peewee",
)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure logging for the API process and the refresh script.

    Args:
        level: Overrides settings.LOG_LEVEL (e.g. "DEBUG" for ``--verbose``).
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(asctime)s %(levelname)-8s %(threadName)s %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=getattr(logging, level_name),
        force=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
