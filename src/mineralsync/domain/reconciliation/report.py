"""Batch reconciliation of an external dataset against the reference mirror."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from mineralsync.domain.errors import RecordValidationError
from mineralsync.domain.model import RecordClass

from .contracts import MatchResult, MatchStrategy
from .matcher import Matcher
from .normalize import name_key

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from mineralsync.domain.model import ExternalRecord, ReferenceRecord
    from mineralsync.domain.ports import ReferenceLookup

log = getLogger(__name__)

_RECONCILED_CLASSES = frozenset(record_class.value for record_class in RecordClass)


def is_reconcilable(record: ExternalRecord) -> bool:
    """Only minerals, mineral groups and supergroups (or unclassified rows) are matched."""

    record_class = name_key(record.record_class)
    return not record_class or record_class in _RECONCILED_CLASSES


@dataclass(slots=True, frozen=True, kw_only=True)
class SkippedRecord:
    title: str
    reason: str
    external_key: str | None = None


@dataclass(slots=True, kw_only=True)
class ReconciliationReport:
    """Match results for one pass over the external dataset."""

    results: list[MatchResult] = field(default_factory=list)
    skipped: list[SkippedRecord] = field(default_factory=list)
    invalid: list[SkippedRecord] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results) + len(self.skipped) + len(self.invalid)

    @property
    def counts_by_strategy(self) -> dict[MatchStrategy, int]:
        counts = Counter(result.strategy for result in self.results)
        return {strategy: counts.get(strategy, 0) for strategy in MatchStrategy}

    @property
    def matched(self) -> list[MatchResult]:
        return [result for result in self.results if result.matched]

    @property
    def unmatched(self) -> list[MatchResult]:
        return [result for result in self.results if not result.matched]

    @property
    def needs_review_count(self) -> int:
        return sum(1 for result in self.results if result.needs_review)

    @property
    def conflict_count(self) -> int:
        return sum(1 for result in self.results if result.has_conflicts)

    @property
    def matched_reference_ids(self) -> frozenset[int]:
        return frozenset(
            result.reference.reference_id
            for result in self.results
            if result.reference is not None
        )

    def summary(self) -> dict[str, int]:
        summary = {
            "total": self.total,
            "processed": len(self.results),
            "skipped": len(self.skipped),
            "invalid": len(self.invalid),
            "matched": len(self.matched),
            "unmatched": len(self.unmatched),
            "needs_review": self.needs_review_count,
            "with_conflicts": self.conflict_count,
        }
        for strategy, count in self.counts_by_strategy.items():
            summary[f"strategy:{strategy.value}"] = count
        return summary


def reconcile(
    records: Iterable[ExternalRecord],
    lookup: ReferenceLookup,
    *,
    matcher: Matcher | None = None,
) -> ReconciliationReport:
    """Match every reconcilable record and collect the results into a report."""

    active_matcher = matcher or Matcher()
    report = ReconciliationReport()
    for record in records:
        _reconcile_one(record, lookup, active_matcher, report)
    _log_summary(report)
    return report


def reconcile_rows(
    rows: Iterable[Mapping[str, str | None]],
    lookup: ReferenceLookup,
    *,
    parse: Callable[[Mapping[str, str | None]], ExternalRecord],
    matcher: Matcher | None = None,
) -> ReconciliationReport:
    """Like ``reconcile`` but validates raw rows first; malformed rows are reported, not raised."""

    active_matcher = matcher or Matcher()
    report = ReconciliationReport()
    for index, row in enumerate(rows, start=1):
        try:
            record = parse(row)
        except RecordValidationError as exc:
            log.warning("Skipping malformed row %d: %s", index, exc)
            report.invalid.append(
                SkippedRecord(title=str(row.get("Title") or ""), reason=str(exc))
            )
            continue
        _reconcile_one(record, lookup, active_matcher, report)
    _log_summary(report)
    return report


def find_unlisted_references(
    report: ReconciliationReport,
    lookup: ReferenceLookup,
) -> list[ReferenceRecord]:
    """Approved reference records that no external record matched, by id."""

    matched = report.matched_reference_ids
    unlisted = [record for record in lookup.list_approved() if record.reference_id not in matched]
    unlisted.sort(key=lambda record: record.reference_id)
    return unlisted


def _reconcile_one(
    record: ExternalRecord,
    lookup: ReferenceLookup,
    matcher: Matcher,
    report: ReconciliationReport,
) -> None:
    if not is_reconcilable(record):
        log.debug("Skipping %r with class %r", record.title, record.record_class)
        report.skipped.append(
            SkippedRecord(
                title=record.title,
                reason=f"class {record.record_class!r} is not reconciled",
                external_key=record.external_key,
            )
        )
        return
    report.results.append(matcher.match(record, lookup))


def _log_summary(report: ReconciliationReport) -> None:
    log.info(
        "Reconciled %d records: %d matched, %d unmatched, %d need review, %d skipped, %d invalid",
        len(report.results),
        len(report.matched),
        len(report.unmatched),
        report.needs_review_count,
        len(report.skipped),
        len(report.invalid),
    )
