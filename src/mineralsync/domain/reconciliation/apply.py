"""Project a match onto the values the external dataset should be updated with.

The reference record is the source of truth for ordinary minerals. Varieties and
synonyms keep their own descriptive fields and title; only their reference id and
relationship names come from the mirror. When the caller supplies an index of
the external dataset's own keys, relationships are also expressed as those keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .classification import code_for
from .conflicts import format_hardness
from .matcher import parse_reference_id

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from mineralsync.domain.model import ExternalRecord, ReferenceRecord
    from mineralsync.domain.ports import ReferenceLookup

    from .contracts import MatchResult


@dataclass(slots=True, frozen=True, kw_only=True)
class ReconciledRow:
    """Field values for one external record after applying its match."""

    title: str
    reference_id: str
    formula: str
    crystal_system: str
    hardness_min: str
    hardness_max: str
    colour: str
    streak: str
    classification_code: str
    status: str
    variety_of: str
    synonym_of: str
    group_parent: str
    polytype_of: str
    external_key: str
    variety_of_key: str = ""
    synonym_of_key: str = ""
    group_parent_key: str = ""
    polytype_of_key: str = ""
    notes: tuple[str, ...] = ()


def external_key_index(results: Iterable[MatchResult]) -> dict[int, str]:
    """Map reference ids to the keys of the external records that carry them.

    A matched result indexes its matched reference id, an unmatched one its own
    plain reference id. The first record seen for an id wins.
    """

    index: dict[int, str] = {}
    for result in results:
        key = _text(result.external.external_key)
        if result.reference is not None:
            reference_id: int | None = result.reference.reference_id
        else:
            reference_id = parse_reference_id(result.external.reference_id)
        if key and reference_id is not None:
            index.setdefault(reference_id, key)
    return index


def build_update(
    result: MatchResult,
    lookup: ReferenceLookup,
    keys: Mapping[int, str] | None = None,
) -> ReconciledRow:
    """Return the updated field values for a matched external record.

    Unmatched results pass the external values through unchanged. With ``keys``
    (see ``external_key_index``) each relationship also gets the related record's
    external key, and relationships missing from the external dataset are noted.
    """

    external = result.external
    reference = result.reference
    if reference is None:
        return _passthrough(external)

    keep_external = external.is_variety or external.is_synonym
    title = external.title if keep_external else reference.canonical_name

    def pick(reference_value: str | None, external_value: str | None) -> str:
        if keep_external:
            return _text(external_value)
        return _text(reference_value) or _text(external_value)

    reference_code = code_for(reference.classification)
    related = _related_keys(reference, keys) if keys is not None else {}
    notes = tuple(
        f"{label.replace('_', ' ').capitalize()} reference {related_id} "
        "is not in the external dataset"
        for label, (related_id, key) in related.items()
        if not key
    )
    return ReconciledRow(
        title=title,
        reference_id=str(reference.reference_id),
        formula=pick(reference.formula, external.formula),
        crystal_system=pick(reference.crystal_system, external.crystal_system),
        hardness_min=_hardness(
            external.hardness_min if keep_external else None,
            None if keep_external else reference.hardness_min,
            external.hardness_min,
        ),
        hardness_max=_hardness(
            external.hardness_max if keep_external else None,
            None if keep_external else reference.hardness_max,
            external.hardness_max,
        ),
        colour=pick(reference.colour, external.colour),
        streak=pick(reference.streak, external.streak),
        classification_code=reference_code or code_for(external.classification),
        status=_text(reference.status),
        variety_of=_resolve_name(lookup, reference.variety_of) or _text(external.variety_of_name),
        synonym_of=_resolve_name(lookup, reference.synonym_of) or _text(external.synonym_of_name),
        group_parent=_resolve_group(lookup, reference.group_id)
        or _text(external.group_parent_name),
        polytype_of=_polytype_name(lookup, reference.polytype_of)
        or _text(external.polytype_of_name),
        external_key=_text(external.external_key),
        variety_of_key=_key(related, "variety_of"),
        synonym_of_key=_key(related, "synonym_of"),
        group_parent_key=_key(related, "group_parent"),
        polytype_of_key=_key(related, "polytype_of"),
        notes=notes,
    )


def _passthrough(external: ExternalRecord) -> ReconciledRow:
    return ReconciledRow(
        title=external.title,
        reference_id=_text(external.reference_id),
        formula=_text(external.formula),
        crystal_system=_text(external.crystal_system),
        hardness_min=_hardness(external.hardness_min, None, None),
        hardness_max=_hardness(external.hardness_max, None, None),
        colour=_text(external.colour),
        streak=_text(external.streak),
        classification_code=code_for(external.classification),
        status="",
        variety_of=_text(external.variety_of_name),
        synonym_of=_text(external.synonym_of_name),
        group_parent=_text(external.group_parent_name),
        polytype_of=_text(external.polytype_of_name),
        external_key=_text(external.external_key),
    )


def _text(value: str | None) -> str:
    return value.strip() if value else ""


def _hardness(preferred: str | None, reference: float | None, fallback: str | None) -> str:
    """Zero hardness means "unknown" in both datasets and is blanked."""

    if preferred is not None:
        value = _text(preferred)
    elif reference:
        value = format_hardness(reference)
    else:
        value = _text(fallback)
    return "" if value in {"0", "0.0"} else value


def _resolve_name(lookup: ReferenceLookup, reference_id: int | None) -> str:
    if not reference_id:
        return ""
    related = lookup.get_by_id(reference_id)
    return related.canonical_name if related is not None else ""


def _resolve_group(lookup: ReferenceLookup, group_id: int | None) -> str:
    if not group_id:
        return ""
    return _resolve_name(lookup, group_id) or f"Group {group_id}"


def _polytype_name(lookup: ReferenceLookup, value: str | None) -> str:
    """Numeric polytype values are reference ids; anything else is a free-text name."""

    text = _text(value)
    if not text or text == "0":
        return ""
    polytype_id = parse_reference_id(text)
    if polytype_id is None:
        return text
    return _resolve_name(lookup, polytype_id)


def _related_keys(
    reference: ReferenceRecord,
    keys: Mapping[int, str],
) -> dict[str, tuple[int, str]]:
    relations = {
        "variety_of": reference.variety_of,
        "synonym_of": reference.synonym_of,
        "group_parent": reference.group_id,
        "polytype_of": parse_reference_id(reference.polytype_of),
    }
    return {
        label: (related_id, keys.get(related_id, ""))
        for label, related_id in relations.items()
        if related_id
    }


def _key(related: Mapping[str, tuple[int, str]], label: str) -> str:
    return related[label][1] if label in related else ""
