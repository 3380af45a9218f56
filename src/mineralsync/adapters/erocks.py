"""Validation of e-Rocks spreadsheet rows into external records.

Reading the file itself is left to the caller; this module only turns one row
mapping (column title -> cell text) into an ``ExternalRecord``.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mineralsync.domain.errors import RecordValidationError
from mineralsync.domain.model import ExternalRecord
from mineralsync.domain.reconciliation.classification import parse_code

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

log = getLogger(__name__)

_QUOTES = "'\""


class ERocksRow(BaseModel):
    """One row of the e-Rocks mineral export, keyed by its column titles."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str = Field(alias="Title", min_length=1)
    mindat_id: str | None = Field(default=None, alias="Mindat ID")
    formula: str | None = Field(default=None, alias="Formula")
    strunz: str | None = Field(default=None, alias="Strunz")
    record_class: str | None = Field(default=None, alias="Class")
    colour: str | None = Field(default=None, alias="Colour")
    crystal_system: str | None = Field(default=None, alias="Crystal System")
    hardness_min: str | None = Field(default=None, alias="Hardness Min")
    hardness_max: str | None = Field(default=None, alias="Hardness Max")
    streak: str | None = Field(default=None, alias="Streak")
    variety_of: str | None = Field(default=None, alias="Variety Of")
    synonym_of: str | None = Field(default=None, alias="Synonym Of")
    group_parent: str | None = Field(default=None, alias="Group Parent")
    polytype_of: str | None = Field(default=None, alias="Polytype Of")
    nid: str | None = Field(default=None, alias="Nid")

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("mindat_id")
    @classmethod
    def _strip_quotes(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip(_QUOTES).strip() or None

    def to_record(self) -> ExternalRecord:
        return ExternalRecord(
            title=self.title,
            reference_id=self.mindat_id,
            formula=self.formula,
            classification_parts=parse_code(self.strunz).as_tuple(),
            crystal_system=self.crystal_system,
            hardness_min=self.hardness_min,
            hardness_max=self.hardness_max,
            colour=self.colour,
            streak=self.streak,
            variety_of_name=self.variety_of,
            synonym_of_name=self.synonym_of,
            group_parent_name=self.group_parent,
            polytype_of_name=self.polytype_of,
            record_class=self.record_class,
            external_key=self.nid,
        )


def parse_external_row(row: Mapping[str, str | None]) -> ExternalRecord:
    """Validate one raw row; raises ``RecordValidationError`` when it is unusable."""

    try:
        return ERocksRow.model_validate(dict(row)).to_record()
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise RecordValidationError(f"Invalid e-Rocks row: {problems}") from exc


def iter_external_records(rows: Iterable[Mapping[str, str | None]]) -> Iterator[ExternalRecord]:
    """Yield valid records, logging and skipping malformed rows."""

    for index, row in enumerate(rows, start=1):
        try:
            yield parse_external_row(row)
        except RecordValidationError as exc:
            log.warning("Skipping malformed row %d: %s", index, exc)
