"""Content hashing over the salient fields of a reference record."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Final, TypeAlias

if TYPE_CHECKING:
    from mineralsync.domain.model import ReferenceRecord

SalientValue: TypeAlias = str | int | float | None

SALIENT_FIELDS: Final[tuple[str, ...]] = (
    "canonical_name",
    "ima_formula",
    "mindat_formula",
    "status",
    "classification",
    "crystal_system",
    "hardness_min",
    "hardness_max",
    "colour",
    "streak",
    "variety_of",
    "group_id",
    "synonym_of",
    "polytype_of",
)


def salient_fields(record: ReferenceRecord) -> dict[str, SalientValue]:
    """Return the fields that decide whether a record changed.

    Classification is flattened into its four levels so a change to any single
    level is visible in ``changed_fields``.
    """

    values: dict[str, SalientValue] = {}
    for name in SALIENT_FIELDS:
        if name == "classification":
            for level, part in enumerate(record.classification.as_tuple(), start=1):
                values[f"classification_{level}"] = _clean(part)
            continue
        values[name] = _clean(getattr(record, name))
    return values


def content_hash(record: ReferenceRecord) -> str:
    """SHA-256 over a key-sorted JSON rendering of the salient fields."""

    return hash_fields(salient_fields(record))


def hash_fields(fields: dict[str, SalientValue]) -> str:
    document = json.dumps(fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(document.encode("utf-8")).hexdigest()


def changed_fields(before: ReferenceRecord, after: ReferenceRecord) -> tuple[str, ...]:
    """Names of the salient fields that differ between two versions of a record."""

    old = salient_fields(before)
    new = salient_fields(after)
    return tuple(name for name in sorted(new) if old.get(name) != new[name])


def _clean(value: object) -> SalientValue:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, int | float):
        return value
    return str(value)
