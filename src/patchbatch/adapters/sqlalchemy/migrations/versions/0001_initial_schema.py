"""Initial schema: batches, queued diffs and advisory object locks.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from patchbatch.adapters.sqlalchemy.mappings import UTCDateTime

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_DIFF_STATUSES = (
    "pending",
    "applied",
    "ignored",
    "object_load_fail",
    "subresource_load_fail",
    "patch_fail",
    "update_fail",
)


def upgrade() -> None:
    op.create_table(
        "batch",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_batch")),
    )
    op.create_table(
        "diff_record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("target_id", sa.String(), nullable=False),
        sa.Column("sub_resource_id", sa.String(), nullable=False),
        sa.Column("diff", sa.LargeBinary(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*_DIFF_STATUSES, name="diff_status", native_enum=False, length=32),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["batch_id"],
            ["batch.id"],
            name=op.f("fk_diff_record_batch_id_batch"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_diff_record")),
    )
    op.create_index(
        "ix_diff_record_batch_status", "diff_record", ["batch_id", "status"], unique=False
    )
    op.create_table(
        "object_lock",
        sa.Column("target_id", sa.String(), nullable=False),
        sa.Column("holder", sa.String(), nullable=False),
        sa.Column("acquired_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("target_id", name=op.f("pk_object_lock")),
    )


def downgrade() -> None:
    op.drop_table("object_lock")
    op.drop_index("ix_diff_record_batch_status", table_name="diff_record")
    op.drop_table("diff_record")
    op.drop_table("batch")
