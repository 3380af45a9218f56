"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, insert, or_, select

from mineralsync.adapters.sqlalchemy.mappings import (
    LookupKeyKind,
    change_record_table,
    reference_lookup_key_table,
    reference_record_table,
)
from mineralsync.domain.model import ChangeRecord, ReferenceRecord
from mineralsync.domain.ports import MirrorStats
from mineralsync.domain.reconciliation.normalize import (
    name_key,
    name_variants,
    normalize_formula,
)

if TYPE_CHECKING:
    from collections.abc import Collection, Iterator
    from datetime import datetime

    from sqlalchemy import ColumnElement, Select
    from sqlalchemy.orm import Session

_LIVE = reference_record_table.c.deleted_at.is_(None)
_ABSENT_PARTS = ("", "0")


def lookup_keys(record: ReferenceRecord) -> Iterator[tuple[LookupKeyKind, str]]:
    """Derived keys stored beside a record so the matcher never scans the table."""

    seen: set[tuple[LookupKeyKind, str]] = set()
    candidates = [(LookupKeyKind.NAME, name_key(record.canonical_name))]
    for formula in record.formulas:
        candidates.append((LookupKeyKind.FORMULA, formula.strip()))
        candidates.append((LookupKeyKind.NORMALIZED_FORMULA, normalize_formula(formula)))
    candidates.extend(
        (LookupKeyKind.NORMALIZED_NAME, variant) for variant in name_variants(record.canonical_name)
    )
    for kind, key in candidates:
        if key and (kind, key) not in seen:
            seen.add((kind, key))
            yield kind, key


def _part_present(column: ColumnElement[str | None]) -> ColumnElement[bool]:
    return column.is_not(None) & func.trim(column).not_in(_ABSENT_PARTS)


def _part_absent(column: ColumnElement[str | None]) -> ColumnElement[bool]:
    return or_(column.is_(None), func.trim(column).in_(_ABSENT_PARTS))


_INCOMPLETE = (
    _part_present(reference_record_table.c.classification_1)
    & _part_present(reference_record_table.c.classification_2)
    & _part_present(reference_record_table.c.classification_3)
    & _part_absent(reference_record_table.c.classification_4)
)


class SqlAlchemyReferenceRepository:
    """Read/write access to mirrored records, soft-deleted ones included."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, reference_id: int) -> ReferenceRecord | None:
        return self.session.get(ReferenceRecord, reference_id)

    def upsert(self, record: ReferenceRecord) -> None:
        self.session.add(record)
        self.session.flush()
        self._replace_lookup_keys(record)

    def append_change(self, change: ChangeRecord) -> None:
        self.session.add(change)

    def sample_by_staleness(
        self,
        limit: int,
        *,
        older_than: datetime | None = None,
    ) -> list[ReferenceRecord]:
        synced = reference_record_table.c.last_synced_at
        stmt = select(ReferenceRecord)
        if older_than is not None:
            stmt = stmt.where(or_(synced.is_(None), synced < older_than))
        stmt = stmt.order_by(synced.asc().nulls_first(), reference_record_table.c.reference_id)
        return list(self.session.scalars(stmt.limit(limit)))

    def max_id(self) -> int:
        stmt = select(func.max(reference_record_table.c.reference_id))
        return self.session.execute(stmt).scalar_one_or_none() or 0

    def find_incomplete(self, limit: int | None = None) -> list[ReferenceRecord]:
        stmt = (
            select(ReferenceRecord)
            .where(_LIVE, _INCOMPLETE)
            .order_by(reference_record_table.c.reference_id)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt))

    def changes_for(self, reference_id: int) -> list[ChangeRecord]:
        stmt = (
            select(ChangeRecord)
            .where(change_record_table.c.reference_id == reference_id)
            .order_by(change_record_table.c.detected_at, change_record_table.c.id)
        )
        return list(self.session.scalars(stmt))

    def stats(self) -> MirrorStats:
        table = reference_record_table
        total, deleted, max_id, last_synced_at = self.session.execute(
            select(
                func.count(),
                func.count(table.c.deleted_at),
                func.max(table.c.reference_id),
                func.max(table.c.last_synced_at),
            ).select_from(table)
        ).one()
        incomplete = self.session.execute(
            select(func.count()).select_from(table).where(_LIVE, _INCOMPLETE)
        ).scalar_one()
        return MirrorStats(
            total=total,
            deleted=deleted,
            incomplete=incomplete,
            max_id=max_id or 0,
            last_synced_at=_as_utc(last_synced_at),
        )

    def _replace_lookup_keys(self, record: ReferenceRecord) -> None:
        keys = reference_lookup_key_table
        self.session.execute(delete(keys).where(keys.c.reference_id == record.reference_id))
        rows = [
            {"reference_id": record.reference_id, "kind": kind, "key": key}
            for kind, key in lookup_keys(record)
        ]
        if rows:
            self.session.execute(insert(keys), rows)


class SqlAlchemyReferenceLookup:
    """Read-only queries over live mirrored records for the matcher."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, reference_id: int) -> ReferenceRecord | None:
        record = self.session.get(ReferenceRecord, reference_id)
        if record is None or record.is_deleted:
            return None
        return record

    def find_by_name(self, name: str) -> list[ReferenceRecord]:
        return self._by_keys(LookupKeyKind.NAME, (name_key(name),))

    def find_by_normalized_names(self, keys: Collection[str]) -> list[ReferenceRecord]:
        return self._by_keys(LookupKeyKind.NORMALIZED_NAME, keys)

    def search_similar(self, prefix: str, *, limit: int) -> list[ReferenceRecord]:
        needle = prefix.strip().lower()
        if not needle:
            return []
        name = reference_record_table.c.canonical_name
        stmt = (
            select(ReferenceRecord)
            .where(_LIVE, func.lower(name).contains(needle, autoescape=True))
            .order_by(func.length(name), reference_record_table.c.reference_id)
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def find_by_formula(self, formula: str) -> list[ReferenceRecord]:
        return self._by_keys(LookupKeyKind.FORMULA, (formula.strip(),))

    def find_by_normalized_formula(self, formula: str) -> list[ReferenceRecord]:
        return self._by_keys(LookupKeyKind.NORMALIZED_FORMULA, (formula,))

    def list_approved(self) -> list[ReferenceRecord]:
        status = reference_record_table.c.status
        stmt = (
            select(ReferenceRecord)
            .where(_LIVE, status.is_not(None), func.trim(status).not_in(("", "{}")))
            .order_by(reference_record_table.c.reference_id)
        )
        return list(self.session.scalars(stmt))

    def _by_keys(self, kind: LookupKeyKind, keys: Collection[str]) -> list[ReferenceRecord]:
        wanted = [key for key in keys if key]
        if not wanted:
            return []
        return list(self.session.scalars(_select_by_keys(kind, wanted)))


def _select_by_keys(kind: LookupKeyKind, keys: list[str]) -> Select[tuple[ReferenceRecord]]:
    lookup = reference_lookup_key_table
    matching_ids = select(lookup.c.reference_id).where(
        lookup.c.kind == kind,
        lookup.c.key.in_(keys),
    )
    return (
        select(ReferenceRecord)
        .where(_LIVE, reference_record_table.c.reference_id.in_(matching_ids))
        .order_by(reference_record_table.c.reference_id)
    )


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)
