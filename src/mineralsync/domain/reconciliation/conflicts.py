"""Field-level comparison of a matched external/reference pair.

The detector only reports disagreements; deciding which side wins is left to the
caller. A value missing on either side is never a conflict.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, TypeAlias

from .classification import code_for
from .contracts import Conflict, ConflictField
from .normalize import name_key, normalize_formula

if TYPE_CHECKING:
    from collections.abc import Callable

    from mineralsync.domain.model import ExternalRecord, ReferenceRecord

    FieldCheck: TypeAlias = Callable[[ExternalRecord, ReferenceRecord], Conflict | None]


def detect_conflicts(external: ExternalRecord, reference: ReferenceRecord) -> tuple[Conflict, ...]:
    """Return the conflicts between ``external`` and ``reference`` in field order."""

    conflicts: list[Conflict] = []
    for check in _CHECKS:
        conflict = check(external, reference)
        if conflict is not None:
            conflicts.append(conflict)
    return tuple(conflicts)


def _formula_conflict(external: ExternalRecord, reference: ReferenceRecord) -> Conflict | None:
    external_formula = normalize_formula(external.formula)
    if not external_formula or not reference.formulas:
        return None
    reference_formulas = {normalize_formula(formula) for formula in reference.formulas}
    if external_formula in reference_formulas:
        return None
    return Conflict(
        field=ConflictField.FORMULA,
        external_value=(external.formula or "").strip(),
        reference_value=reference.formula or "",
    )


def _classification_conflict(
    external: ExternalRecord,
    reference: ReferenceRecord,
) -> Conflict | None:
    external_code = code_for(external.classification)
    reference_code = code_for(reference.classification)
    if not external_code or not reference_code:
        return None
    # A placeholder fourth level is a distinct state from a known one.
    if external_code.casefold() == reference_code.casefold():
        return None
    return Conflict(
        field=ConflictField.CLASSIFICATION,
        external_value=external_code,
        reference_value=reference_code,
    )


def _text_check(field: ConflictField, attribute: str) -> FieldCheck:
    def check(external: ExternalRecord, reference: ReferenceRecord) -> Conflict | None:
        external_value = getattr(external, attribute)
        reference_value = getattr(reference, attribute)
        if not name_key(external_value) or not name_key(reference_value):
            return None
        if name_key(external_value) == name_key(reference_value):
            return None
        return Conflict(
            field=field,
            external_value=external_value.strip(),
            reference_value=reference_value.strip(),
        )

    return check


def _hardness_check(field: ConflictField, attribute: str) -> FieldCheck:
    def check(external: ExternalRecord, reference: ReferenceRecord) -> Conflict | None:
        external_value: str | None = getattr(external, attribute)
        reference_value: float | None = getattr(reference, attribute)
        if not external_value or not external_value.strip() or not reference_value:
            return None
        parsed = _parse_number(external_value)
        if parsed is None:
            if name_key(external_value) == name_key(format_hardness(reference_value)):
                return None
        elif parsed == 0 or math.isclose(parsed, reference_value, abs_tol=1e-9):
            return None
        return Conflict(
            field=field,
            external_value=external_value.strip(),
            reference_value=format_hardness(reference_value),
        )

    return check


def format_hardness(value: float) -> str:
    return f"{value:g}"


def _parse_number(value: str) -> float | None:
    try:
        parsed = float(value.strip().replace(",", "."))
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


_CHECKS: tuple[FieldCheck, ...] = (
    _formula_conflict,
    _classification_conflict,
    _text_check(ConflictField.CRYSTAL_SYSTEM, "crystal_system"),
    _hardness_check(ConflictField.HARDNESS_MIN, "hardness_min"),
    _hardness_check(ConflictField.HARDNESS_MAX, "hardness_max"),
    _text_check(ConflictField.STREAK, "streak"),
)
