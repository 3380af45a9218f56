from __future__ import annotations

import contextlib
import time
import warnings
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest

from mineralsync.domain.errors import (
    SourceUnavailableError,
    StorageUnavailableError,
    SyncAlreadyRunningError,
    TransientFetchError,
)
from mineralsync.domain.model import ChangeKind
from mineralsync.domain.sync import CancellationToken, SyncEngine, SyncErrorKind, SyncPolicy
from mineralsync.domain.sync.engine import pacing_limiter
from tests.support.mirror import make_reference

if TYPE_CHECKING:
    from collections.abc import Callable

    from tests.support.mirror import InMemoryMirror
    from tests.support.sources import FakeReferenceSource


@pytest.fixture
def make_engine(
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
    ticking_clock: Callable[[], datetime],
) -> Callable[..., SyncEngine]:
    def build(**policy: object) -> SyncEngine:
        return SyncEngine(
            source_factory=fake_source.factory,
            unit_of_work_factory=memory_mirror.unit_of_work,
            policy=SyncPolicy(**policy),  # type: ignore[arg-type]
            limiter_factory=contextlib.nullcontext,
            clock=ticking_clock,
        )

    return build


@pytest.fixture
def published(fake_source: FakeReferenceSource) -> FakeReferenceSource:
    fake_source.put(
        make_reference(1000, "Abelsonite", ima_formula="NiC31H32N4"),
        make_reference(1002, "Quartz", ima_formula="SiO2", colour="Colourless"),
        make_reference(1005, "Grossular", ima_formula="Ca3Al2(SiO4)3"),
        make_reference(1010, "Zinnwaldite", classification=("9", "E", "C", "20")),
    )
    return fake_source


def test_range_sync_is_idempotent(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    engine = make_engine()

    first = engine.sync_range(1000, 1010)
    second = engine.sync_range(1000, 1010)

    assert (first.checked, first.new, first.unchanged) == (11, 4, 0)
    assert (second.checked, second.new, second.updated, second.unchanged) == (11, 0, 0, 4)
    assert sorted(memory_mirror.records) == [1000, 1002, 1005, 1010]
    assert [change.change_kind for change in memory_mirror.changes] == [ChangeKind.NEW] * 4
    assert published.opened == 2


def test_changed_record_is_updated_with_field_names(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    engine = make_engine()
    engine.sync_range(1000, 1010)
    published.put(make_reference(1002, "Quartz", ima_formula="SiO2", colour="Purple"))

    result = engine.sync_range(1002, 1002)

    assert result.updated == 1
    (_, update) = memory_mirror.changes_for(1002)
    assert update.change_kind is ChangeKind.UPDATED
    assert update.changed_fields == ("colour",)
    assert memory_mirror.records[1002].colour == "Purple"


def test_delete_and_recreate_cycle(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    engine = make_engine()
    engine.sync_range(1005, 1005)

    published.remove(1005)
    deleted = engine.sync_range(1005, 1005)
    still_deleted = engine.sync_range(1005, 1005)
    published.put(make_reference(1005, "Grossular", ima_formula="Ca3Al2(SiO4)3"))
    recreated = engine.sync_range(1005, 1005)

    assert deleted.deleted == 1
    assert still_deleted.changed == 0
    assert recreated.new == 1
    assert not memory_mirror.records[1005].is_deleted
    assert [change.change_kind for change in memory_mirror.changes_for(1005)] == [
        ChangeKind.NEW,
        ChangeKind.DELETED,
        ChangeKind.NEW,
    ]


def test_transient_failures_are_recorded_and_the_pass_continues(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    published.failures[1002] = TransientFetchError("HTTP 503", reference_id=1002)
    published.delays[1005] = 1.0
    engine = make_engine(fetch_timeout_seconds=0.01)

    result = engine.sync_range(1000, 1010)

    assert result.new == 2
    assert result.error_count == 2
    assert [(error.reference_id, error.kind) for error in result.errors] == [
        (1002, SyncErrorKind.FETCH),
        (1005, SyncErrorKind.TIMEOUT),
    ]
    assert 1002 not in memory_mirror.records


def test_storage_failure_on_one_id_is_recorded(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    memory_mirror.fail_writes_for.add(1002)

    result = make_engine().sync_range(1000, 1005)

    assert result.new == 2
    assert result.errors[0].kind is SyncErrorKind.STORAGE
    assert "disk full" in result.errors[0].message


def test_cancellation_keeps_progress_made_so_far(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    token = CancellationToken()

    async def cancel_at_1002(reference_id: int) -> None:
        if reference_id == 1002:
            token.cancel()

    published.before_fetch = cancel_at_1002

    result = make_engine().sync_range(1000, 1010, cancel=token)

    assert result.cancelled
    assert result.checked == 3
    assert published.calls == [1000, 1001, 1002]
    assert sorted(memory_mirror.records) == [1000, 1002]


def test_only_one_operation_runs_at_a_time(
    make_engine: Callable[..., SyncEngine],
    published: FakeReferenceSource,
) -> None:
    engine = make_engine()
    attempts: list[int] = []

    async def start_another(reference_id: int) -> None:
        assert engine.is_running
        attempts.append(reference_id)
        with pytest.raises(SyncAlreadyRunningError):
            await engine.sync_new_async()

    published.before_fetch = start_another

    result = engine.sync_range(1000, 1001)

    assert result.new == 1
    assert attempts == [1000, 1001]
    assert not engine.is_running


def test_unreachable_source_aborts_the_operation(
    make_engine: Callable[..., SyncEngine],
    fake_source: FakeReferenceSource,
) -> None:
    fake_source.open_error = SourceUnavailableError("Mindat rejected the API key")
    engine = make_engine()

    with pytest.raises(SourceUnavailableError):
        engine.sync_range(1, 10)
    assert not engine.is_running


def test_unreadable_mirror_aborts_the_operation(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
) -> None:
    memory_mirror.unavailable = True

    with pytest.raises(StorageUnavailableError):
        make_engine().sync_new()


def test_placeholder_is_repaired_without_a_change_record(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
) -> None:
    ankerite = make_reference(2000, "Ankerite", classification=("5", "B", "E", None))
    memory_mirror.add(ankerite)
    fake_source.put(make_reference(2000, "Ankerite", classification=("5", "B", "E", None)))
    engine = make_engine()

    result = engine.refresh_incomplete()

    assert result.repaired == 1
    assert result.changed == 0
    assert memory_mirror.records[2000].classification.fourth == "x"
    assert memory_mirror.changes == []
    assert engine.refresh_incomplete().checked == 0


def test_missing_fourth_level_arriving_later_is_an_update(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
) -> None:
    memory_mirror.add(make_reference(2000, "Ankerite", classification=("5", "B", "E", None)))
    fake_source.put(make_reference(2000, "Ankerite", classification=("5", "B", "E", "05")))

    result = make_engine().refresh_incomplete()

    assert result.updated == 1
    assert memory_mirror.changes[0].changed_fields == ("classification_4",)


def test_merged_id_is_treated_as_deleted(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
) -> None:
    engine = make_engine()
    fake_source.put(make_reference(3000, "Bementite"), make_reference(3001, "Caryopilite"))
    engine.sync_range(3000, 3001)
    fake_source.remove(3000)
    fake_source.redirects[3000] = 3001

    result = engine.sync_range(3000, 3001)

    assert (result.deleted, result.unchanged) == (1, 1)
    assert memory_mirror.records[3000].is_deleted
    assert memory_mirror.records[3000].canonical_name == "Bementite"


def test_validate_sample_visits_the_stalest_records_first(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
) -> None:
    for reference_id, day in ((1000, 3), (1002, 1), (1005, 2), (1010, 4)):
        record = published.records[reference_id]
        local = make_reference(reference_id, record.canonical_name)
        local.last_synced_at = datetime(2025, 6, day, tzinfo=UTC)
        memory_mirror.add(local)

    result = make_engine().validate_sample(3)

    assert published.calls == [1002, 1005, 1000]
    assert result.checked == 3


def test_range_defaults_resume_after_highest_id(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
) -> None:
    memory_mirror.add(make_reference(1005, "Grossular"))

    make_engine(default_range_span=3).sync_range()

    assert fake_source.calls == [1006, 1007, 1008]


def test_sync_new_scans_after_highest_id(
    make_engine: Callable[..., SyncEngine],
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
) -> None:
    memory_mirror.add(make_reference(10, "Quartz"))
    fake_source.put(make_reference(12, "Newmineralite"))

    result = make_engine().sync_new(span=5)

    assert fake_source.calls == [11, 12, 13, 14, 15]
    assert result.new == 1


def test_invalid_range_is_rejected(make_engine: Callable[..., SyncEngine]) -> None:
    engine = make_engine()

    with pytest.raises(ValueError, match="Invalid id range"):
        engine.sync_range(10, 5)
    assert not engine.is_running


def _paced_engine(
    memory_mirror: InMemoryMirror,
    fake_source: FakeReferenceSource,
    ticking_clock: Callable[[], datetime],
) -> SyncEngine:
    return SyncEngine(
        source_factory=fake_source.factory,
        unit_of_work_factory=memory_mirror.unit_of_work,
        policy=SyncPolicy(requests_per_minute=600),
        clock=ticking_clock,
    )


def test_default_limiter_spaces_fetches_evenly(
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
    ticking_clock: Callable[[], datetime],
) -> None:
    started: list[float] = []

    async def stamp(reference_id: int) -> None:
        started.append(time.monotonic())

    published.before_fetch = stamp
    engine = _paced_engine(memory_mirror, published, ticking_clock)

    engine.sync_range(1000, 1003)

    assert len(started) == 4
    # 600 requests per minute leaves 0.1s between fetches.
    assert started[-1] - started[0] >= 0.25


def test_limiter_is_rebuilt_for_every_operation(
    memory_mirror: InMemoryMirror,
    published: FakeReferenceSource,
    ticking_clock: Callable[[], datetime],
) -> None:
    engine = _paced_engine(memory_mirror, published, ticking_clock)

    with warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        first = engine.sync_range(1000, 1001)
        second = engine.sync_range(1000, 1001)

    assert first.new == 1
    assert second.unchanged == 1


def test_pacing_limiter_holds_one_token() -> None:
    limiter = pacing_limiter(30)

    assert limiter.max_rate == 1
    assert limiter.time_period == 2.0
