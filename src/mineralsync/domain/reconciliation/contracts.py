"""Result types produced by matching and conflict detection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mineralsync.domain.model import ExternalRecord, ReferenceRecord


class MatchStrategy(StrEnum):
    """Pipeline step that produced a match, in pipeline order."""

    EXACT_ID = "exact-id"
    EXACT_NAME = "exact-name"
    NORMALIZED_NAME = "normalized-name"
    FUZZY_NAME = "fuzzy-name"
    FORMULA = "formula"
    NONE = "none"


AUTO_ACCEPTED_STRATEGIES: frozenset[MatchStrategy] = frozenset(
    {MatchStrategy.EXACT_ID, MatchStrategy.EXACT_NAME}
)


class ConflictField(StrEnum):
    """Comparable fields checked by the conflict detector, in report order."""

    FORMULA = "formula"
    CLASSIFICATION = "classification"
    CRYSTAL_SYSTEM = "crystal_system"
    HARDNESS_MIN = "hardness_min"
    HARDNESS_MAX = "hardness_max"
    STREAK = "streak"


@dataclass(slots=True, frozen=True, kw_only=True)
class Conflict:
    """A field on which a matched pair disagrees after normalization."""

    field: ConflictField
    external_value: str
    reference_value: str


@dataclass(slots=True, frozen=True, kw_only=True)
class MatchResult:
    """Outcome of matching one external record against the mirror."""

    external: ExternalRecord
    reference: ReferenceRecord | None
    strategy: MatchStrategy
    confidence: float
    needs_review: bool
    conflicts: tuple[Conflict, ...] = ()
    notes: tuple[str, ...] = ()

    @property
    def matched(self) -> bool:
        return self.reference is not None

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)
