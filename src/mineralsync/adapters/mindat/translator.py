"""Translate Mindat payloads into mirror records."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mineralsync.domain.model import ClassificationParts, ReferenceRecord

if TYPE_CHECKING:
    from .schema import MindatMineral


def translate_mineral(payload: MindatMineral) -> ReferenceRecord:
    """Build an unsaved ``ReferenceRecord`` from a Mindat mineral payload.

    Mindat uses ``0`` for "no relation" and for unknown hardness; both become
    ``None``. The content hash is left empty for the sync engine to compute.
    """

    return ReferenceRecord(
        reference_id=payload.id,
        canonical_name=payload.name.strip(),
        ima_formula=_text(payload.ima_formula),
        mindat_formula=_text(payload.mindat_formula),
        classification=ClassificationParts.from_sequence(
            (
                payload.strunz10ed1,
                payload.strunz10ed2,
                payload.strunz10ed3,
                payload.strunz10ed4,
            )
        ),
        status=", ".join(status.strip() for status in payload.ima_status if status.strip())
        or None,
        crystal_system=_text(payload.crystal_system),
        hardness_min=payload.hardness_min or None,
        hardness_max=payload.hardness_max or None,
        colour=_text(payload.colour),
        streak=_text(payload.streak),
        variety_of=payload.varietyof or None,
        group_id=payload.groupid or None,
        synonym_of=payload.synid or None,
        polytype_of=_polytype(payload.polytypeof),
    )


def _text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _polytype(value: str | None) -> str | None:
    text = _text(value)
    return None if text in {None, "0"} else text
