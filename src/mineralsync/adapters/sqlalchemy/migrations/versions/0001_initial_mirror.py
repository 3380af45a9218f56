"""Initial mirror schema: reference records, change log and lookup keys.

Revision ID: 0001_initial_mirror
Revises:
Create Date: 2026-10-17 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_mirror"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "reference_record",
        sa.Column("reference_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("canonical_name", sa.String(), nullable=False),
        sa.Column("ima_formula", sa.String(), nullable=True),
        sa.Column("mindat_formula", sa.String(), nullable=True),
        sa.Column("classification_1", sa.String(), nullable=True),
        sa.Column("classification_2", sa.String(), nullable=True),
        sa.Column("classification_3", sa.String(), nullable=True),
        sa.Column("classification_4", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=True),
        sa.Column("crystal_system", sa.String(), nullable=True),
        sa.Column("hardness_min", sa.Float(), nullable=True),
        sa.Column("hardness_max", sa.Float(), nullable=True),
        sa.Column("colour", sa.String(), nullable=True),
        sa.Column("streak", sa.String(), nullable=True),
        sa.Column("variety_of", sa.Integer(), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("synonym_of", sa.Integer(), nullable=True),
        sa.Column("polytype_of", sa.String(), nullable=True),
        sa.Column("content_hash", sa.String(length=64), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("reference_id", name="pk_reference_record"),
    )
    op.create_index(
        "ix_reference_record_last_synced_at", "reference_record", ["last_synced_at"]
    )

    op.create_table(
        "change_record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("change_kind", sa.String(length=7), nullable=False),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("changed_fields", sa.String(), nullable=True),
        sa.ForeignKeyConstraint(
            ["reference_id"],
            ["reference_record.reference_id"],
            name="fk_change_record_reference_id_reference_record",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_change_record"),
    )
    op.create_index("ix_change_record_reference_id", "change_record", ["reference_id"])

    op.create_table(
        "reference_lookup_key",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("reference_id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=18), nullable=False),
        sa.Column("key", sa.String(), nullable=False),
        sa.ForeignKeyConstraint(
            ["reference_id"],
            ["reference_record.reference_id"],
            name="fk_reference_lookup_key_reference_id_reference_record",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_reference_lookup_key"),
    )
    op.create_index(
        "ix_reference_lookup_key_kind_key", "reference_lookup_key", ["kind", "key"]
    )


def downgrade() -> None:
    op.drop_index("ix_reference_lookup_key_kind_key", table_name="reference_lookup_key")
    op.drop_table("reference_lookup_key")
    op.drop_index("ix_change_record_reference_id", table_name="change_record")
    op.drop_table("change_record")
    op.drop_index("ix_reference_record_last_synced_at", table_name="reference_record")
    op.drop_table("reference_record")
