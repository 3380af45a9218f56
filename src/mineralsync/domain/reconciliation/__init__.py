"""Reconciliation of external dataset rows against the reference mirror.

Layered flow:
1) normalize names and formulas into comparable keys
2) match each external record through the ordered strategy pipeline
3) detect field-level conflicts on the matched pair
4) collect results into a report and project updates for matched rows
"""

from __future__ import annotations

from .apply import ReconciledRow, build_update, external_key_index
from .classification import PLACEHOLDER, build_code, is_incomplete, parse_code, with_placeholder
from .conflicts import detect_conflicts
from .contracts import Conflict, ConflictField, MatchResult, MatchStrategy
from .matcher import Matcher, parse_reference_id, similarity_score
from .normalize import name_key, name_variants, normalize_formula, normalize_name
from .policy import MatchPolicy
from .report import (
    ReconciliationReport,
    SkippedRecord,
    find_unlisted_references,
    is_reconcilable,
    reconcile,
    reconcile_rows,
)

__all__ = [
    "PLACEHOLDER",
    "Conflict",
    "ConflictField",
    "MatchPolicy",
    "MatchResult",
    "MatchStrategy",
    "Matcher",
    "ReconciledRow",
    "ReconciliationReport",
    "SkippedRecord",
    "build_code",
    "build_update",
    "detect_conflicts",
    "external_key_index",
    "find_unlisted_references",
    "is_incomplete",
    "is_reconcilable",
    "name_key",
    "name_variants",
    "normalize_formula",
    "normalize_name",
    "parse_code",
    "parse_reference_id",
    "reconcile",
    "reconcile_rows",
    "similarity_score",
    "with_placeholder",
]
