"""Result and control types shared by the sync operations."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import StrEnum

from mineralsync.domain.model import ChangeKind


class SyncOutcome(StrEnum):
    """What happened to a single reference id during a pass."""

    NEW = "new"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    REPAIRED = "repaired"
    ABSENT = "absent"

    @property
    def change_kind(self) -> ChangeKind | None:
        """Change-log entry emitted for this outcome, if any."""

        match self:
            case SyncOutcome.NEW:
                return ChangeKind.NEW
            case SyncOutcome.UPDATED:
                return ChangeKind.UPDATED
            case SyncOutcome.DELETED:
                return ChangeKind.DELETED
            case SyncOutcome.UNCHANGED | SyncOutcome.REPAIRED | SyncOutcome.ABSENT:
                return None


class SyncErrorKind(StrEnum):
    FETCH = "fetch"
    TIMEOUT = "timeout"
    STORAGE = "storage"


@dataclass(slots=True, frozen=True, kw_only=True)
class SyncError:
    """A per-id failure recorded in the operation summary."""

    reference_id: int
    kind: SyncErrorKind
    message: str

    def __str__(self) -> str:
        return f"ID {self.reference_id}: {self.message}"


@dataclass(slots=True, kw_only=True)
class SyncResult:
    """Aggregate counts for one sync operation.

    ``errors`` holds at most ``max_reported_errors`` entries; ``error_count`` keeps
    the full total so a capped list never hides how many items failed.
    """

    operation: str
    max_reported_errors: int = 50
    checked: int = 0
    new: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    repaired: int = 0
    error_count: int = 0
    cancelled: bool = False
    errors: list[SyncError] = field(default_factory=list)

    def record(self, outcome: SyncOutcome) -> None:
        self.checked += 1
        match outcome:
            case SyncOutcome.NEW:
                self.new += 1
            case SyncOutcome.UPDATED:
                self.updated += 1
            case SyncOutcome.DELETED:
                self.deleted += 1
            case SyncOutcome.UNCHANGED:
                self.unchanged += 1
            case SyncOutcome.REPAIRED:
                self.repaired += 1
            case SyncOutcome.ABSENT:
                pass

    def record_error(self, error: SyncError) -> None:
        self.checked += 1
        self.error_count += 1
        if len(self.errors) < self.max_reported_errors:
            self.errors.append(error)

    @property
    def changed(self) -> int:
        return self.new + self.updated + self.deleted

    def summary(self) -> dict[str, int | bool | list[str]]:
        return {
            "checked": self.checked,
            "new": self.new,
            "updated": self.updated,
            "deleted": self.deleted,
            "unchanged": self.unchanged,
            "repaired": self.repaired,
            "error_count": self.error_count,
            "errors": [str(error) for error in self.errors],
            "cancelled": self.cancelled,
        }


class CancellationToken:
    """Cooperative cancellation flag checked by the engine between ids."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()
