from __future__ import annotations

import pytest

from mineralsync.domain.model import ChangeKind
from mineralsync.domain.sync import (
    CancellationToken,
    SyncError,
    SyncErrorKind,
    SyncOutcome,
    SyncPolicy,
    SyncResult,
)


@pytest.mark.parametrize(
    ("outcome", "kind"),
    [
        (SyncOutcome.NEW, ChangeKind.NEW),
        (SyncOutcome.UPDATED, ChangeKind.UPDATED),
        (SyncOutcome.DELETED, ChangeKind.DELETED),
        (SyncOutcome.UNCHANGED, None),
        (SyncOutcome.REPAIRED, None),
        (SyncOutcome.ABSENT, None),
    ],
)
def test_only_real_changes_emit_change_records(
    outcome: SyncOutcome, kind: ChangeKind | None
) -> None:
    assert outcome.change_kind is kind


def test_error_list_is_capped_but_counted() -> None:
    result = SyncResult(operation="sync_range", max_reported_errors=2)
    for reference_id in range(5):
        result.record_error(
            SyncError(reference_id=reference_id, kind=SyncErrorKind.FETCH, message="HTTP 503")
        )

    assert result.error_count == 5
    assert result.checked == 5
    assert [error.reference_id for error in result.errors] == [0, 1]


def test_summary_reports_every_counter() -> None:
    result = SyncResult(operation="sync_new")
    for outcome in (SyncOutcome.NEW, SyncOutcome.NEW, SyncOutcome.ABSENT, SyncOutcome.REPAIRED):
        result.record(outcome)
    result.record_error(SyncError(reference_id=9, kind=SyncErrorKind.TIMEOUT, message="slow"))

    summary = result.summary()

    assert summary["checked"] == 5
    assert summary["new"] == 2
    assert summary["repaired"] == 1
    assert summary["errors"] == ["ID 9: slow"]
    assert summary["cancelled"] is False
    assert result.changed == 2


def test_cancellation_token() -> None:
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled


def test_policy_rejects_non_positive_limits() -> None:
    with pytest.raises(ValueError, match="requests_per_minute"):
        SyncPolicy(requests_per_minute=0)
