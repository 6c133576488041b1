"""
db/models/matching_job.py

Spreadsheet matching job model for status tracking and artifact lookup.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, PortableJSON, TimestampMixin


class MatchingJobStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    ALL = frozenset({PENDING, PROCESSING, COMPLETED, FAILED})


class MatchingJob(Base, TimestampMixin):
    __tablename__ = "matching_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=MatchingJobStatus.PENDING,
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    result_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    success_log_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_log_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    notify_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    processed_rows: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    download_links: Mapped[dict[str, Any] | None] = mapped_column(PortableJSON, nullable=True)
    result_summary: Mapped[dict[str, Any] | None] = mapped_column(
        PortableJSON,
        nullable=True,
        comment="Status counts and totals for the finished job",
    )
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_matching_jobs_status", "status"),
        Index("ix_matching_jobs_created_at", "created_at"),
        Index("ix_matching_jobs_notify_email", "notify_email"),
        Index("ix_matching_jobs_started_at_status", "started_at", "status"),
    )
