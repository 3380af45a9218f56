"""Alembic helpers for the mirror schema.

The revisions ship inside the package, so the script location is always this
directory. ``[tool.alembic]`` in pyproject.toml points the ``alembic`` command
line at the same place.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from mineralsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
HEAD: Final[str] = "head"


def build_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the mirror schema to the newest revision.

    With ``engine`` the upgrade runs on one of its connections inside a single
    transaction; otherwise alembic connects to ``database_uri`` or the
    configured database.
    """

    if engine is None:
        command.upgrade(build_config(database_uri or get_database_config().uri), HEAD)
        return
    config = build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, HEAD)
