"""Canonical forms for mineral names and chemical formulas.

Responsibilities of this module:
- turn free-text names into comparable keys (primary form plus variants)
- strip presentational encoding from formulas so equal formulas compare equal
- never raise: unparseable input degrades to a best-effort result
"""

from __future__ import annotations

import html
import re
import unicodedata
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_CLASS_SUFFIX = re.compile(r"[\s-]+(?:supergroup|group|series)\s*$", re.IGNORECASE)
_PARENTHETICAL_SUFFIX = re.compile(r"[\s-]*\([^()]*\)\s*$")
_BASE_DELIMITER = re.compile(r"[-(]")
_MARKUP_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

_SUBSCRIPT_DIGITS = "₀₁₂₃₄₅₆₇₈₉"
_SUPERSCRIPT_DIGITS = "⁰¹²³⁴⁵⁶⁷⁸⁹"
_MIDDLE_DOTS = "·•∙⋅・‧･"

_FORMULA_GLYPHS = str.maketrans(
    {
        **{glyph: str(digit) for digit, glyph in enumerate(_SUBSCRIPT_DIGITS)},
        **{glyph: str(digit) for digit, glyph in enumerate(_SUPERSCRIPT_DIGITS)},
        **dict.fromkeys(_MIDDLE_DOTS, "."),
        "₊": "+",
        "⁺": "+",
        "₋": "-",
        "⁻": "-",
        "−": "-",
    }
)


def normalize_name(raw: str | None) -> str:
    """Return the primary comparison key for a mineral name.

    Decomposes, drops combining marks, case-folds and keeps ASCII alphanumerics
    only, so ``"Přibramite"`` and ``"Pribramite"`` share a key. Idempotent.
    """

    if not raw:
        return ""
    decomposed = unicodedata.normalize("NFKD", raw)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return _NON_ALNUM.sub("", stripped.casefold())


def name_variants(raw: str | None) -> tuple[str, ...]:
    """Return the ordered, de-duplicated candidate keys for a name.

    The primary key comes first, followed by the key without a trailing class
    suffix (Group, Series, Supergroup), without a trailing parenthetical suffix
    such as ``-(Ce)``, and finally the base before the first hyphen or
    parenthesis. Variants are only candidates; callers score each independently.
    """

    if not raw or not raw.strip():
        return ()
    text = raw.strip()
    candidates = (
        text,
        _CLASS_SUFFIX.sub("", text),
        _PARENTHETICAL_SUFFIX.sub("", text),
        _BASE_DELIMITER.split(text, maxsplit=1)[0],
    )
    return _dedupe(normalize_name(candidate) for candidate in candidates)


def name_key(raw: str | None) -> str:
    """Case-insensitive key for exact name lookups (whitespace collapsed)."""

    if not raw:
        return ""
    return _WHITESPACE.sub(" ", raw).strip().casefold()


def normalize_formula(raw: str | None) -> str:
    """Return a formula stripped of presentational encoding.

    HTML entities are decoded and markup tags such as ``<sub>`` dropped, Unicode
    sub/superscript digits and signs become ASCII, every middle-dot style
    hydration separator becomes ``.`` and whitespace is removed. Element case is
    preserved since it is significant.
    """

    if not raw:
        return ""
    text = html.unescape(raw)
    text = _MARKUP_TAG.sub("", text)
    text = text.translate(_FORMULA_GLYPHS)
    return _WHITESPACE.sub("", text)


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        ordered.append(value)
    return tuple(ordered)
