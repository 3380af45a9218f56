"""Records exchanged between the reference mirror, the external dataset and the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .primitives import ClassificationParts

if TYPE_CHECKING:
    from datetime import datetime

    from .enums import ChangeKind


@dataclass(slots=True, frozen=True, kw_only=True)
class ExternalRecord:
    """One row of the external dataset, validated once at the boundary.

    The engine never mutates an external record. Physical properties are kept as
    the free text the dataset ships; comparisons normalise them on demand.
    """

    title: str
    reference_id: str | None = None
    formula: str | None = None
    classification_parts: tuple[str | None, ...] = ()
    crystal_system: str | None = None
    hardness_min: str | None = None
    hardness_max: str | None = None
    colour: str | None = None
    streak: str | None = None
    variety_of_name: str | None = None
    synonym_of_name: str | None = None
    group_parent_name: str | None = None
    polytype_of_name: str | None = None
    record_class: str | None = None
    external_key: str | None = None

    @property
    def classification(self) -> ClassificationParts:
        return ClassificationParts.from_sequence(self.classification_parts)

    @property
    def is_variety(self) -> bool:
        return bool(self.variety_of_name and self.variety_of_name.strip())

    @property
    def is_synonym(self) -> bool:
        return bool(self.synonym_of_name and self.synonym_of_name.strip())

    @property
    def parent_name(self) -> str | None:
        """Name of the mineral this record is a variety or synonym of, if any."""

        for name in (self.variety_of_name, self.synonym_of_name):
            if name and name.strip():
                return name.strip()
        return None

    @property
    def search_name(self) -> str:
        """Name to match on: the parent for varieties and synonyms, else the title."""

        return self.parent_name or self.title.strip()


@dataclass(eq=False, kw_only=True)
class ReferenceRecord:
    """One mirrored record of the reference source.

    ``reference_id`` is assigned by the source and never changes. Only the sync
    engine mutates mirrored records.
    """

    reference_id: int
    canonical_name: str
    ima_formula: str | None = None
    mindat_formula: str | None = None
    classification: ClassificationParts = field(default_factory=ClassificationParts)
    status: str | None = None
    crystal_system: str | None = None
    hardness_min: float | None = None
    hardness_max: float | None = None
    colour: str | None = None
    streak: str | None = None
    variety_of: int | None = None
    group_id: int | None = None
    synonym_of: int | None = None
    polytype_of: str | None = None
    content_hash: str = ""
    last_synced_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def formulas(self) -> tuple[str, ...]:
        """Non-empty formula variants in precedence order."""

        candidates = (self.ima_formula, self.mindat_formula)
        return tuple(value for value in candidates if value and value.strip())

    @property
    def formula(self) -> str | None:
        formulas = self.formulas
        return formulas[0] if formulas else None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(eq=False, kw_only=True)
class ChangeRecord:
    """Append-only log entry for a change the sync engine detected."""

    reference_id: int
    change_kind: ChangeKind
    detected_at: datetime
    changed_fields: tuple[str, ...] = ()
    id: int | None = None
