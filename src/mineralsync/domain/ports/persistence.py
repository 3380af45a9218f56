"""Ports for the local reference mirror."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Collection, Sequence
    from datetime import datetime

    from mineralsync.domain.model import ChangeRecord, ReferenceRecord


@dataclass(slots=True, frozen=True, kw_only=True)
class MirrorStats:
    """Summary of the mirror's contents."""

    total: int
    deleted: int
    incomplete: int
    max_id: int
    last_synced_at: datetime | None


@runtime_checkable
class ReferenceRepository(Protocol):
    """Storage contract used by the sync engine.

    Unlike ``ReferenceLookup`` this contract sees soft-deleted records too, since the
    engine has to tell "never existed" apart from "deleted earlier".
    """

    def get_by_id(self, reference_id: int) -> ReferenceRecord | None: ...

    def upsert(self, record: ReferenceRecord) -> None: ...

    def append_change(self, change: ChangeRecord) -> None: ...

    def sample_by_staleness(
        self,
        limit: int,
        *,
        older_than: datetime | None = None,
    ) -> list[ReferenceRecord]: ...

    def max_id(self) -> int: ...

    def find_incomplete(self, limit: int | None = None) -> list[ReferenceRecord]: ...

    def changes_for(self, reference_id: int) -> list[ChangeRecord]: ...

    def stats(self) -> MirrorStats: ...


@runtime_checkable
class ReferenceLookup(Protocol):
    """Read-only queries the matcher runs against live (not deleted) mirror records."""

    def get_by_id(self, reference_id: int) -> ReferenceRecord | None: ...

    def find_by_name(self, name: str) -> Sequence[ReferenceRecord]: ...

    def find_by_normalized_names(self, keys: Collection[str]) -> Sequence[ReferenceRecord]: ...

    def search_similar(self, prefix: str, *, limit: int) -> Sequence[ReferenceRecord]: ...

    def find_by_formula(self, formula: str) -> Sequence[ReferenceRecord]: ...

    def find_by_normalized_formula(self, formula: str) -> Sequence[ReferenceRecord]: ...

    def list_approved(self) -> Sequence[ReferenceRecord]: ...
