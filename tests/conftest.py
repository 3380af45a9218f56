from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from mineralsync.adapters.sqlalchemy import MirrorDatabase, start_mappers
from mineralsync.adapters.sqlalchemy.migrations import upgrade_head
from tests.support.mirror import InMemoryMirror
from tests.support.sources import FakeReferenceSource

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:")
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def mirror_database(sqlite_engine: Engine) -> MirrorDatabase:
    return MirrorDatabase(sqlite_engine)


@pytest.fixture
def memory_mirror() -> InMemoryMirror:
    return InMemoryMirror()


@pytest.fixture
def fake_source() -> FakeReferenceSource:
    return FakeReferenceSource()


@pytest.fixture
def ticking_clock() -> Callable[[], datetime]:
    """A clock that advances one second per call, starting at a fixed instant."""

    current = datetime(2026, 1, 1, tzinfo=UTC)

    def now() -> datetime:
        nonlocal current
        current += timedelta(seconds=1)
        return current

    return now
