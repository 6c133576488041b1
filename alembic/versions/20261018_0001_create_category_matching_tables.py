"""create scraped_categories, matching_jobs and processed_results tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "scraped_categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("url_hash", sa.String(length=64), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("categories", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            "source",
            sa.String(length=32),
            nullable=False,
            comment="Dominant extraction tier; not per-label provenance",
        ),
        sa.Column("scraped_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ttl_seconds", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("access_count", sa.Integer(), nullable=False),
        sa.Column("is_valid", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_scraped_categories"),
        sa.UniqueConstraint("url_hash", name="uq_scraped_categories_url_hash"),
    )
    op.create_index("ix_scraped_categories_expires_at", "scraped_categories", ["expires_at"], unique=False)
    op.create_index("ix_scraped_categories_scraped_at", "scraped_categories", ["scraped_at"], unique=False)
    op.create_index(
        "ix_scraped_categories_last_accessed_at",
        "scraped_categories",
        ["last_accessed_at"],
        unique=False,
    )

    op.create_table(
        "matching_jobs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_path", sa.Text(), nullable=True),
        sa.Column("result_path", sa.Text(), nullable=True),
        sa.Column("success_log_path", sa.Text(), nullable=True),
        sa.Column("error_log_path", sa.Text(), nullable=True),
        sa.Column("notify_email", sa.String(length=255), nullable=True),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("processed_rows", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("download_links", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            "result_summary",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=True,
            comment="Status counts and totals for the finished job",
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_matching_jobs"),
    )
    op.create_index("ix_matching_jobs_status", "matching_jobs", ["status"], unique=False)
    op.create_index("ix_matching_jobs_created_at", "matching_jobs", ["created_at"], unique=False)
    op.create_index("ix_matching_jobs_notify_email", "matching_jobs", ["notify_email"], unique=False)
    op.create_index(
        "ix_matching_jobs_started_at_status",
        "matching_jobs",
        ["started_at", "status"],
        unique=False,
    )

    op.create_table(
        "processed_results",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("job_id", sa.String(length=36), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False),
        sa.Column("client_site", sa.Text(), nullable=False),
        sa.Column("competitor_site", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("matched_categories_count", sa.Integer(), nullable=False),
        sa.Column("client_categories", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("competitor_categories", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("matched_categories", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("matching_details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("processing_time_ms", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["job_id"],
            ["matching_jobs.id"],
            name="fk_processed_results_job_id_matching_jobs",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_processed_results"),
    )
    op.create_index(
        "ix_processed_results_job_id_row_index",
        "processed_results",
        ["job_id", "row_index"],
        unique=False,
    )
    op.create_index("ix_processed_results_status", "processed_results", ["status"], unique=False)
    op.create_index("ix_processed_results_confidence", "processed_results", ["confidence"], unique=False)
    op.create_index("ix_processed_results_client_site", "processed_results", ["client_site"], unique=False)
    op.create_index(
        "ix_processed_results_competitor_site",
        "processed_results",
        ["competitor_site"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_processed_results_competitor_site", table_name="processed_results")
    op.drop_index("ix_processed_results_client_site", table_name="processed_results")
    op.drop_index("ix_processed_results_confidence", table_name="processed_results")
    op.drop_index("ix_processed_results_status", table_name="processed_results")
    op.drop_index("ix_processed_results_job_id_row_index", table_name="processed_results")
    op.drop_table("processed_results")

    op.drop_index("ix_matching_jobs_started_at_status", table_name="matching_jobs")
    op.drop_index("ix_matching_jobs_notify_email", table_name="matching_jobs")
    op.drop_index("ix_matching_jobs_created_at", table_name="matching_jobs")
    op.drop_index("ix_matching_jobs_status", table_name="matching_jobs")
    op.drop_table("matching_jobs")

    op.drop_index("ix_scraped_categories_last_accessed_at", table_name="scraped_categories")
    op.drop_index("ix_scraped_categories_scraped_at", table_name="scraped_categories")
    op.drop_index("ix_scraped_categories_expires_at", table_name="scraped_categories")
    op.drop_table("scraped_categories")
