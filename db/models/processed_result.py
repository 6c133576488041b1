"""
db/models/processed_result.py

Persisted outcome for one spreadsheet row of a matching job.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, PortableJSON, TimestampMixin


class ProcessedResult(Base, TimestampMixin):
    __tablename__ = "processed_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("matching_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    row_index: Mapped[int] = mapped_column(Integer, nullable=False)
    client_site: Mapped[str] = mapped_column(Text, nullable=False, default="")
    competitor_site: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="FAIL")
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    matched_categories_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    client_categories: Mapped[list[Any] | None] = mapped_column(PortableJSON, nullable=True)
    competitor_categories: Mapped[list[Any] | None] = mapped_column(PortableJSON, nullable=True)
    matched_categories: Mapped[list[Any] | None] = mapped_column(PortableJSON, nullable=True)
    matching_details: Mapped[dict[str, Any] | None] = mapped_column(PortableJSON, nullable=True)
    processing_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_processed_results_job_id_row_index", "job_id", "row_index"),
        Index("ix_processed_results_status", "status"),
        Index("ix_processed_results_confidence", "confidence"),
        Index("ix_processed_results_client_site", "client_site"),
        Index("ix_processed_results_competitor_site", "competitor_site"),
    )
