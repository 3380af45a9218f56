"""SQLAlchemy mapping metadata for the reference mirror."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import StrEnum
from functools import cache

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    TypeDecorator,
    orm,
)
from sqlalchemy.orm import composite

from mineralsync.domain.model import (
    ChangeKind,
    ChangeRecord,
    ClassificationParts,
    ReferenceRecord,
)

log = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class FieldListType(TypeDecorator[tuple[str, ...]]):
    """Stores a tuple of field names as a comma-separated string."""

    impl = String
    cache_ok = True

    def process_bind_param(self, value: tuple[str, ...] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if not value:
            return None
        return ",".join(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if not value:
            return ()
        return tuple(part for part in value.split(",") if part)


class LookupKeyKind(StrEnum):
    """Kinds of derived lookup keys kept beside each mirrored record."""

    NAME = "name"
    NORMALIZED_NAME = "normalized_name"
    FORMULA = "formula"
    NORMALIZED_FORMULA = "normalized_formula"


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

reference_record_table = Table(
    "reference_record",
    mapper_registry.metadata,
    Column("reference_id", Integer, primary_key=True, autoincrement=False),
    Column("canonical_name", String, nullable=False),
    Column("ima_formula", String, nullable=True),
    Column("mindat_formula", String, nullable=True),
    Column("classification_1", String, nullable=True),
    Column("classification_2", String, nullable=True),
    Column("classification_3", String, nullable=True),
    Column("classification_4", String, nullable=True),
    Column("status", String, nullable=True),
    Column("crystal_system", String, nullable=True),
    Column("hardness_min", Float, nullable=True),
    Column("hardness_max", Float, nullable=True),
    Column("colour", String, nullable=True),
    Column("streak", String, nullable=True),
    Column("variety_of", Integer, nullable=True),
    Column("group_id", Integer, nullable=True),
    Column("synonym_of", Integer, nullable=True),
    Column("polytype_of", String, nullable=True),
    Column("content_hash", String(64), nullable=False, default=""),
    Column("last_synced_at", UTCDateTime(), nullable=True),
    Column("deleted_at", UTCDateTime(), nullable=True),
    Index("ix_reference_record_last_synced_at", "last_synced_at"),
)

change_record_table = Table(
    "change_record",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "reference_id",
        Integer,
        ForeignKey("reference_record.reference_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "change_kind",
        Enum(
            ChangeKind,
            native_enum=False,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    ),
    Column("detected_at", UTCDateTime(), nullable=False),
    Column("changed_fields", FieldListType(), nullable=True),
    Index("ix_change_record_reference_id", "reference_id"),
)

reference_lookup_key_table = Table(
    "reference_lookup_key",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "reference_id",
        Integer,
        ForeignKey("reference_record.reference_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "kind",
        Enum(
            LookupKeyKind,
            native_enum=False,
            values_callable=lambda kinds: [kind.value for kind in kinds],
        ),
        nullable=False,
    ),
    Column("key", String, nullable=False),
    Index("ix_reference_lookup_key_kind_key", "kind", "key"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain records."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        ReferenceRecord,
        reference_record_table,
        properties={
            "classification": composite(
                ClassificationParts,
                reference_record_table.c.classification_1,
                reference_record_table.c.classification_2,
                reference_record_table.c.classification_3,
                reference_record_table.c.classification_4,
            ),
        },
    )
    mapper_registry.map_imperatively(ChangeRecord, change_record_table)

    orm.configure_mappers()
    return mapper_registry

