"""Strunz classification codes: assembly, parsing and placeholder repair.

A code is built from up to four ordered parts. Parts two and three form one
sub-level and are concatenated without a separator (``5.BE``). A record whose
first three levels are known but whose fourth is absent is stored with the
placeholder ``x`` once repaired; the bare three-level form is a transitional state
that ``is_incomplete`` reports.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from functools import singledispatch
from typing import Final

from mineralsync.domain.model import ClassificationParts, ExternalRecord, ReferenceRecord

PLACEHOLDER: Final[str] = "x"
_ABSENT_SENTINEL: Final[str] = "0"
_MAX_PARTS: Final[int] = 4


def is_valid_part(part: str | None) -> bool:
    """A part counts when it is present, non-blank and not the ``"0"`` sentinel."""

    if part is None:
        return False
    stripped = part.strip()
    return bool(stripped) and stripped != _ABSENT_SENTINEL


def is_placeholder(part: str | None) -> bool:
    return part is not None and part.strip().casefold() == PLACEHOLDER


def build_code(*parts: str | None) -> str:
    """Assemble a classification code from one to four ordered parts.

    >>> build_code("5", "B", "E", "5")
    '5.BE.05'
    >>> build_code("5", "B", "E", None)
    '5.BE.x'
    """

    if len(parts) > _MAX_PARTS:
        raise ValueError(f"At most {_MAX_PARTS} classification parts, got {len(parts)}")
    padded = [*parts, *([None] * (_MAX_PARTS - len(parts)))]
    # Levels are positional: the first missing one ends the code.
    present: list[str] = []
    for part in padded:
        if part is None or not is_valid_part(part):
            break
        present.append(part.strip())
    if not present:
        return ""
    if len(present) == 1:
        return present[0]
    if len(present) == 2:  # noqa: PLR2004
        return f"{present[0]}.{present[1]}"
    if len(present) == 3:  # noqa: PLR2004
        present.append(PLACEHOLDER)
    return f"{present[0]}.{present[1]}{present[2]}.{_pad_fourth(present[3])}"


def code_for(parts: ClassificationParts) -> str:
    return build_code(*parts.as_tuple())


def parse_code(code: str | None) -> ClassificationParts:
    """Split a packed code such as ``5.BE.05`` back into its parts (best effort)."""

    if not code or not code.strip():
        return ClassificationParts()
    segments = [segment.strip() for segment in code.strip().split(".")]
    first = segments[0] or None
    second: str | None = None
    third: str | None = None
    fourth: str | None = None
    if len(segments) > 1 and segments[1]:
        second = segments[1][0]
        third = segments[1][1:] or None
    if len(segments) > 2 and segments[2]:
        fourth = segments[2]
    return ClassificationParts(first, second, third, fourth)


@singledispatch
def is_incomplete(value: object) -> bool:
    """Return whether levels one to three are known but level four was never captured.

    Accepts classification parts, a reference or external record, a sequence of
    parts or a stored code string.
    """

    raise TypeError(f"Cannot inspect classification of {type(value).__name__}")


@is_incomplete.register
def _(parts: ClassificationParts) -> bool:
    first, second, third, fourth = parts.as_tuple()
    if not (is_valid_part(first) and is_valid_part(second) and is_valid_part(third)):
        return False
    return not is_valid_part(fourth)


@is_incomplete.register
def _(record: ReferenceRecord) -> bool:
    return is_incomplete(record.classification)


@is_incomplete.register
def _(record: ExternalRecord) -> bool:
    return is_incomplete(record.classification)


@is_incomplete.register
def _(code: str) -> bool:
    return is_incomplete(parse_code(code))


@is_incomplete.register
def _(parts: Sequence) -> bool:  # pyright: ignore[reportMissingTypeArgument]
    return is_incomplete(ClassificationParts.from_sequence(list(parts)))


def with_placeholder(parts: ClassificationParts) -> ClassificationParts:
    """Return the steady-state form of ``parts``: incomplete codes get ``x`` as level four."""

    if is_incomplete(parts):
        return replace(parts, fourth=PLACEHOLDER)
    return parts


def _pad_fourth(part: str) -> str:
    if part.isdigit() and len(part) < 2:
        return part.zfill(2)
    if is_placeholder(part):
        return PLACEHOLDER
    return part
