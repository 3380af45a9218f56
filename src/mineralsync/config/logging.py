"""Root logger setup for sync jobs and reconciliation runs."""

from __future__ import annotations

import logging

from .env import optional_env_var
from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Per-request chatter from the HTTP stack and migration steps.
_CHATTY_LOGGERS = ("httpx", "httpcore", "alembic.runtime.migration")


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = optional_env_var("MINERALSYNC_LOG_LEVEL") or logging.INFO
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(f"Unknown log level {level!r}")
    return numeric


def configure_logging(*, level: int | str | None = None, force: bool = False) -> None:
    """Configure the root logger for job output.

    ``level`` defaults to ``MINERALSYNC_LOG_LEVEL`` or INFO. The HTTP client and
    alembic loggers stay at WARNING unless the run is at DEBUG.
    """

    numeric = _resolve_level(level)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, datefmt="%H:%M:%S", force=force)
    quiet = numeric if numeric <= logging.DEBUG else max(numeric, logging.WARNING)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
