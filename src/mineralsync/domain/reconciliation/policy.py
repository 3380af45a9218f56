"""Tunable thresholds for the matching pipeline."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_FUZZY_THRESHOLD = 80.0
DEFAULT_REVIEW_THRESHOLD = 95.0
DEFAULT_FUZZY_PREFIX_LENGTH = 10
DEFAULT_FUZZY_CANDIDATE_LIMIT = 10

EXACT_ID_CONFIDENCE = 100.0
EXACT_NAME_CONFIDENCE = 95.0
NORMALIZED_NAME_CONFIDENCE = 88.0
EXACT_FORMULA_CONFIDENCE = 80.0
NORMALIZED_FORMULA_CONFIDENCE = 75.0


@dataclass(slots=True, frozen=True, kw_only=True)
class MatchPolicy:
    """Thresholds used by the matcher.

    ``fuzzy_threshold`` is exclusive: a fuzzy candidate must score strictly above it.
    Any confidence below ``review_threshold`` is flagged for review.
    """

    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    review_threshold: float = DEFAULT_REVIEW_THRESHOLD
    fuzzy_prefix_length: int = DEFAULT_FUZZY_PREFIX_LENGTH
    fuzzy_candidate_limit: int = DEFAULT_FUZZY_CANDIDATE_LIMIT

    def __post_init__(self) -> None:
        for name in ("fuzzy_threshold", "review_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 100:  # noqa: PLR2004
                raise ValueError(f"{name} must be between 0 and 100, got {value}")
        if self.fuzzy_prefix_length < 1:
            raise ValueError("fuzzy_prefix_length must be positive")
        if self.fuzzy_candidate_limit < 1:
            raise ValueError("fuzzy_candidate_limit must be positive")
