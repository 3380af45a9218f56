"""Ordered matching pipeline from external records to mirrored reference records.

Steps run strictly in order and stop at the first acceptable hit:

1. exact reference id (plain positive integers only)
2. case-insensitive exact name
3. normalized name variants
4. fuzzy name over a bounded prefix search
5. exact, then normalized formula

Varieties and synonyms are matched through their parent's name; their own title is
left untouched. The matcher never writes and keeps no state between calls.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, TypeAlias

from rapidfuzz.distance import Levenshtein

from .conflicts import detect_conflicts
from .contracts import AUTO_ACCEPTED_STRATEGIES, MatchResult, MatchStrategy
from .normalize import name_variants, normalize_formula
from .policy import (
    EXACT_FORMULA_CONFIDENCE,
    EXACT_ID_CONFIDENCE,
    EXACT_NAME_CONFIDENCE,
    NORMALIZED_FORMULA_CONFIDENCE,
    NORMALIZED_NAME_CONFIDENCE,
    MatchPolicy,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from mineralsync.domain.model import ExternalRecord, ReferenceRecord
    from mineralsync.domain.ports import ReferenceLookup

    _Hit: TypeAlias = tuple[ReferenceRecord, MatchStrategy, float]

log = getLogger(__name__)

_PLAIN_ID = re.compile(r"[0-9]+")


def parse_reference_id(value: str | None) -> int | None:
    """Return ``value`` as a reference id if it is a plain positive integer."""

    if value is None:
        return None
    stripped = value.strip()
    if not _PLAIN_ID.fullmatch(stripped):
        return None
    parsed = int(stripped)
    return parsed if parsed > 0 else None


def similarity_score(left: str, right: str) -> float:
    """Normalized edit-distance similarity on a 0-100 scale, case-insensitive."""

    return Levenshtein.normalized_similarity(left.lower(), right.lower()) * 100


@dataclass(slots=True, frozen=True)
class Matcher:
    """Match external records against a reference lookup."""

    policy: MatchPolicy = field(default_factory=MatchPolicy)

    def match(self, external: ExternalRecord, lookup: ReferenceLookup) -> MatchResult:
        notes: list[str] = []
        if external.is_variety:
            notes.append(f"Variety of {external.parent_name}; matching the parent")
        elif external.is_synonym:
            notes.append(f"Synonym of {external.parent_name}; matching the parent")

        steps: tuple[Callable[[ExternalRecord, ReferenceLookup, list[str]], _Hit | None], ...] = (
            self._by_id,
            self._by_exact_name,
            self._by_name_variants,
            self._by_fuzzy_name,
            self._by_formula,
        )
        for step in steps:
            hit = step(external, lookup, notes)
            if hit is None:
                continue
            reference, strategy, confidence = hit
            return MatchResult(
                external=external,
                reference=reference,
                strategy=strategy,
                confidence=round(confidence, 1),
                needs_review=self._needs_review(strategy, confidence),
                conflicts=detect_conflicts(external, reference),
                notes=tuple(notes),
            )

        notes.append("No match found in the reference mirror")
        log.debug("No match for %r", external.title)
        return MatchResult(
            external=external,
            reference=None,
            strategy=MatchStrategy.NONE,
            confidence=0.0,
            needs_review=False,
            notes=tuple(notes),
        )

    def _needs_review(self, strategy: MatchStrategy, confidence: float) -> bool:
        if strategy not in AUTO_ACCEPTED_STRATEGIES:
            return True
        return confidence < self.policy.review_threshold

    def _by_id(
        self,
        external: ExternalRecord,
        lookup: ReferenceLookup,
        notes: list[str],
    ) -> _Hit | None:
        raw_id = (external.reference_id or "").strip()
        if not raw_id:
            return None
        reference_id = parse_reference_id(raw_id)
        if reference_id is None:
            notes.append(f"Reference id {raw_id!r} is not a plain id; skipping id lookup")
            return None
        reference = lookup.get_by_id(reference_id)
        if reference is None:
            notes.append(f"Reference id {reference_id} not found in the mirror")
            return None
        notes.append(f"Matched by reference id {reference_id}")
        return reference, MatchStrategy.EXACT_ID, EXACT_ID_CONFIDENCE

    def _by_exact_name(
        self,
        external: ExternalRecord,
        lookup: ReferenceLookup,
        notes: list[str],
    ) -> _Hit | None:
        search_name = external.search_name
        if not search_name:
            return None
        candidates = lookup.find_by_name(search_name)
        if not candidates:
            return None
        notes.append(f"Matched by exact name {search_name!r}")
        return candidates[0], MatchStrategy.EXACT_NAME, EXACT_NAME_CONFIDENCE

    def _by_name_variants(
        self,
        external: ExternalRecord,
        lookup: ReferenceLookup,
        notes: list[str],
    ) -> _Hit | None:
        for variant in name_variants(external.search_name):
            candidates = lookup.find_by_normalized_names((variant,))
            if not candidates:
                continue
            reference = candidates[0]
            notes.append(
                f"Matched by normalized variant {variant!r}: "
                f"{external.search_name!r} -> {reference.canonical_name!r}"
            )
            if len(candidates) > 1:
                notes.append(f"{len(candidates)} reference records share this variant")
            return reference, MatchStrategy.NORMALIZED_NAME, NORMALIZED_NAME_CONFIDENCE
        return None

    def _by_fuzzy_name(
        self,
        external: ExternalRecord,
        lookup: ReferenceLookup,
        notes: list[str],
    ) -> _Hit | None:
        search_name = external.search_name
        if not search_name:
            return None
        prefix = search_name[: self.policy.fuzzy_prefix_length]
        candidates = lookup.search_similar(prefix, limit=self.policy.fuzzy_candidate_limit)

        best: ReferenceRecord | None = None
        best_score = 0.0
        for candidate in candidates:
            score = similarity_score(search_name, candidate.canonical_name)
            if score > best_score:
                best, best_score = candidate, score
        if best is None or best_score <= self.policy.fuzzy_threshold:
            return None
        notes.append(
            f"Fuzzy match {search_name!r} -> {best.canonical_name!r} ({best_score:.1f}% similar)"
        )
        return best, MatchStrategy.FUZZY_NAME, best_score

    def _by_formula(
        self,
        external: ExternalRecord,
        lookup: ReferenceLookup,
        notes: list[str],
    ) -> _Hit | None:
        formula = (external.formula or "").strip()
        if not formula:
            return None

        exact = lookup.find_by_formula(formula)
        if exact:
            notes.append(f"Exact formula match {formula!r}")
            if len(exact) > 1:
                notes.append(f"{len(exact)} reference records share this formula")
            return exact[0], MatchStrategy.FORMULA, EXACT_FORMULA_CONFIDENCE

        normalized = normalize_formula(formula)
        if not normalized:
            return None
        candidates = lookup.find_by_normalized_formula(normalized)
        if not candidates:
            return None
        notes.append(f"Normalized formula match {formula!r} -> {candidates[0].formula!r}")
        if len(candidates) > 1:
            notes.append(f"{len(candidates)} reference records share the normalized formula")
        return candidates[0], MatchStrategy.FORMULA, NORMALIZED_FORMULA_CONFIDENCE
