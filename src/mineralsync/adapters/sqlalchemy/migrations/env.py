"""Alembic environment for the mirror schema.

``upgrade_head`` passes an open connection through ``config.attributes``; the
``alembic`` command line falls back to ``sqlalchemy.url`` or the configured
database.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from alembic import context
from sqlalchemy import create_engine, pool

from mineralsync.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from mineralsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

log = logging.getLogger("mineralsync.migrations")

start_mappers()
target_metadata = mapper_registry.metadata

# SQLite needs batch mode for ALTER TABLE.
_OPTIONS: dict[str, Any] = {
    "target_metadata": target_metadata,
    "render_as_batch": True,
    "compare_type": True,
}


def _url() -> str:
    return context.config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _run(**configure: Any) -> None:
    context.configure(**configure, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def _run_on(connection: Connection) -> None:
    _run(connection=connection)


def run_offline() -> None:
    log.info("Rendering mirror migrations as SQL")
    _run(url=_url(), literal_binds=True)


def run_online() -> None:
    shared = context.config.attributes.get("connection")
    if shared is not None:
        _run_on(shared)
        return
    engine = create_engine(_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _run_on(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
