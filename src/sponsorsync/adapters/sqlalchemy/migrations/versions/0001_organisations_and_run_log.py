"""organisations and run log

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "organisation",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("county", sa.String(), nullable=False),
        sa.Column("town_cities", sa.Text(), nullable=False),
        sa.Column("type_and_ratings", sa.Text(), nullable=False),
        sa.Column("routes", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_organisation")),
        sa.UniqueConstraint("name", name=op.f("uq_organisation_organisation_name")),
    )
    op.create_table(
        "run_record",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            sa.Enum(
                "InProgress",
                "Completed",
                "Failed",
                "NoUpdate",
                name="run_status",
                native_enum=False,
                length=16,
            ),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(), nullable=True),
        sa.Column("source_last_update", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_records_processed", sa.Integer(), nullable=False),
        sa.Column("added_records", sa.Text(), nullable=False),
        sa.Column("updated_records", sa.Text(), nullable=False),
        sa.Column("deleted_records", sa.Text(), nullable=False),
        sa.Column("errors", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_run_record")),
    )
    op.create_index(
        "ix_run_record_status_finished_at",
        "run_record",
        ["status", "finished_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_run_record_status_finished_at", table_name="run_record")
    op.drop_table("run_record")
    op.drop_table("organisation")
