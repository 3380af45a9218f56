from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from mineralsync.app import build_sync_engine, mirror_stats, reconcile_erocks_rows
from mineralsync.domain.model import ChangeKind
from mineralsync.domain.reconciliation import Matcher, MatchStrategy
from mineralsync.domain.sync import SyncEngine, SyncPolicy
from tests.support.mirror import make_reference

if TYPE_CHECKING:
    from mineralsync.adapters.sqlalchemy import MirrorDatabase
    from tests.support.sources import FakeReferenceSource


@pytest.fixture
def engine(mirror_database: MirrorDatabase, fake_source: FakeReferenceSource) -> SyncEngine:
    fake_source.put(
        make_reference(1705, "Grossular", ima_formula="Ca3Al2(SiO4)3", status="Approved"),
        make_reference(
            3337,
            "Quartz",
            ima_formula="SiO2",
            status="Approved",
            classification=("4", "D", "A", "05"),
            colour="Colourless",
        ),
        make_reference(432, "Ankerite", status="Approved", classification=("5", "B", "E", None)),
    )
    return build_sync_engine(
        database=mirror_database,
        source_factory=fake_source.factory,
        policy=SyncPolicy(requests_per_minute=60_000, fetch_timeout_seconds=5),
    )


def test_sync_against_sqlite_mirror(
    engine: SyncEngine,
    mirror_database: MirrorDatabase,
    fake_source: FakeReferenceSource,
) -> None:
    first = engine.sync_range(400, 450)
    fake_source.remove(432)
    engine.sync_range(3337, 3337)
    second = engine.sync_range(400, 450)

    stats = mirror_stats(mirror_database)
    with mirror_database.unit_of_work() as uow:
        references = uow.repositories.references
        ankerite = references.get_by_id(432)
        kinds = [change.change_kind for change in references.changes_for(432)]

    assert first.new == 1
    assert second.deleted == 1
    assert ankerite is not None
    assert ankerite.is_deleted
    assert ankerite.classification.fourth == "x"
    assert kinds == [ChangeKind.NEW, ChangeKind.DELETED]
    assert stats.total == 2
    assert stats.deleted == 1
    assert stats.max_id == 3337
    assert stats.last_synced_at is not None


def test_sync_new_resumes_after_highest_mirrored_id(
    engine: SyncEngine,
    mirror_database: MirrorDatabase,
    fake_source: FakeReferenceSource,
) -> None:
    engine.sync_range(1705, 1705)
    fake_source.put(make_reference(1707, "Newmineralite"))

    result = engine.sync_new(span=3)

    assert fake_source.calls[-3:] == [1706, 1707, 1708]
    assert result.new == 1
    assert mirror_stats(mirror_database).max_id == 1707


def test_reconcile_erocks_rows_against_synced_mirror(
    engine: SyncEngine,
    mirror_database: MirrorDatabase,
) -> None:
    engine.sync_range(1705, 1705)
    engine.sync_range(3337, 3337)
    rows = [
        {"Title": "Quartz", "Mindat ID": "3337", "Class": "Mineral", "Colour": "Purple"},
        {"Title": "Amethyst", "Variety Of": "Quartz", "Colour": "Purple"},
        {"Title": "Granite", "Class": "Rock"},
        {"Title": ""},
        {"Title": "Kryptonite"},
    ]

    run = reconcile_erocks_rows(rows, database=mirror_database, matcher=Matcher())

    assert run.report.summary()["invalid"] == 1
    assert len(run.report.skipped) == 1
    assert [result.strategy for result in run.report.results] == [
        MatchStrategy.EXACT_ID,
        MatchStrategy.EXACT_NAME,
        MatchStrategy.NONE,
    ]
    quartz, amethyst, kryptonite = run.updates
    assert (quartz.title, quartz.colour, quartz.classification_code) == (
        "Quartz",
        "Colourless",
        "4.DA.05",
    )
    assert (amethyst.title, amethyst.reference_id, amethyst.colour) == (
        "Amethyst",
        "3337",
        "Purple",
    )
    assert kryptonite.reference_id == ""
    assert [record.reference_id for record in run.unlisted] == [1705]
