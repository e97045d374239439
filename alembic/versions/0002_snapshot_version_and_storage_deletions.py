"""Snapshot schema version and storage deletion queue

Revision ID: 0002_snapshot_version_and_storage_deletions
Revises: 0001_initial_schema
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0002_snapshot_version_and_storage_deletions"
down_revision = "0001_initial_schema"
branch_labels = None
depends_on = None


def _has_table(insp: sa.Inspector, table: str) -> bool:
    return table in insp.get_table_names()


def _has_column(insp: sa.Inspector, table: str, column: str) -> bool:
    if not _has_table(insp, table):
        return False
    return column in {c["name"] for c in insp.get_columns(table)}


def upgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if not _has_column(insp, "applications", "cv_snapshot_version"):
        with op.batch_alter_table("applications", schema=None) as batch_op:
            batch_op.add_column(
                sa.Column("cv_snapshot_version", sa.Integer(), nullable=False, server_default="1")
            )

    if not _has_table(insp, "storage_deletions"):
        op.create_table(
            "storage_deletions",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("provider_id", sa.String(length=255), nullable=False),
            sa.Column("reason", sa.String(length=120), nullable=False, server_default=""),
            sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("last_error", sa.Text(), nullable=False, server_default=""),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index("ix_storage_deletions_provider_id", "storage_deletions", ["provider_id"])


def downgrade() -> None:
    bind = op.get_bind()
    insp = sa.inspect(bind)

    if _has_table(insp, "storage_deletions"):
        op.drop_index("ix_storage_deletions_provider_id", table_name="storage_deletions")
        op.drop_table("storage_deletions")

    if _has_column(insp, "applications", "cv_snapshot_version"):
        with op.batch_alter_table("applications", schema=None) as batch_op:
            batch_op.drop_column("cv_snapshot_version")
