"""Initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("surname", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("address", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="candidate"),
        *_timestamps(),
    )
    op.create_table(
        "cv_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("surname", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("links_json", sa.JSON(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False, server_default=""),
        sa.Column("education_json", sa.JSON(), nullable=False),
        sa.Column("experience_json", sa.JSON(), nullable=False),
        sa.Column("document_provider_id", sa.String(length=255), nullable=True),
        sa.Column("document_url", sa.String(length=800), nullable=True),
        sa.Column("document_filename", sa.String(length=255), nullable=False, server_default=""),
        *_timestamps(),
        sa.CheckConstraint(
            "(document_provider_id IS NULL AND document_url IS NULL) "
            "OR (document_provider_id IS NOT NULL AND document_url IS NOT NULL)",
            name="ck_cv_document_complete",
        ),
    )
    op.create_table(
        "job_postings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("area", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="open"),
        sa.Column("location", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "applications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "job_posting_id", sa.Integer(), sa.ForeignKey("job_postings.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("candidate_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False, server_default=""),
        sa.Column("cv_record_id", sa.Integer(), sa.ForeignKey("cv_records.id", ondelete="SET NULL"), nullable=True),
        sa.Column("cv_snapshot_json", sa.JSON(), nullable=False),
        sa.Column("snapshot_name", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("snapshot_surname", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("snapshot_email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("state", sa.String(length=20), nullable=False, server_default="Submitted"),
        *_timestamps(),
        sa.UniqueConstraint("job_posting_id", "candidate_id", name="uq_application_posting_candidate"),
    )
    op.create_index("ix_applications_job_posting_id", "applications", ["job_posting_id"])
    op.create_index("ix_applications_candidate_id", "applications", ["candidate_id"])
    op.create_index("ix_applications_state", "applications", ["state"])


def downgrade() -> None:
    op.drop_index("ix_applications_state", table_name="applications")
    op.drop_index("ix_applications_candidate_id", table_name="applications")
    op.drop_index("ix_applications_job_posting_id", table_name="applications")
    op.drop_table("applications")
    op.drop_table("job_postings")
    op.drop_table("cv_records")
    op.drop_table("users")
