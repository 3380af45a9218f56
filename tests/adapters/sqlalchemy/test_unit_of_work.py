from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from mineralsync.adapters.sqlalchemy import StartupError, startup
from mineralsync.adapters.sqlalchemy.unit_of_work import MirrorDatabase
from mineralsync.domain.errors import StorageError, StorageUnavailableError
from mineralsync.domain.model import ReferenceRecord
from tests.support.mirror import make_reference

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.engine import Engine


def test_unit_of_work_requires_context(mirror_database: MirrorDatabase) -> None:
    uow = mirror_database.unit_of_work()

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_committed_records_persist(mirror_database: MirrorDatabase) -> None:
    with mirror_database.unit_of_work() as uow:
        uow.repositories.references.upsert(
            make_reference(3337, "Quartz", classification=("4", "D", "A", "05"))
        )
        uow.commit()

    with mirror_database.unit_of_work() as uow:
        stored = uow.repositories.references.get_by_id(3337)

    assert stored is not None
    assert stored.canonical_name == "Quartz"
    assert stored.classification.as_tuple() == ("4", "D", "A", "05")


def test_uncommitted_work_is_discarded(mirror_database: MirrorDatabase) -> None:
    with mirror_database.unit_of_work() as uow:
        uow.repositories.references.upsert(make_reference(3337, "Quartz"))

    with mirror_database.unit_of_work() as uow:
        assert uow.repositories.references.get_by_id(3337) is None


def test_database_errors_surface_as_storage_errors(mirror_database: MirrorDatabase) -> None:
    broken = ReferenceRecord(reference_id=7, canonical_name=None)  # type: ignore[arg-type]

    with pytest.raises(StorageError), mirror_database.unit_of_work() as uow:
        uow.repositories.references.upsert(broken)

    with mirror_database.unit_of_work() as uow:
        assert uow.repositories.references.max_id() == 0


def test_startup_migrates_a_fresh_file(tmp_path: Path) -> None:
    database = startup(database_uri=f"sqlite+pysqlite:///{tmp_path / 'mirror.db'}")
    try:
        with database.unit_of_work() as uow:
            stats = uow.repositories.references.stats()
    finally:
        database.dispose()

    assert stats.total == 0
    assert stats.last_synced_at is None


def test_startup_reuses_an_existing_engine(sqlite_engine: Engine) -> None:
    database = startup(engine=sqlite_engine)

    assert isinstance(database, MirrorDatabase)
    assert database.engine is sqlite_engine


def test_startup_reports_unreachable_database(tmp_path: Path) -> None:
    missing = tmp_path / "missing" / "mirror.db"

    with pytest.raises(StorageUnavailableError):
        startup(database_uri=f"sqlite+pysqlite:///{missing}")
