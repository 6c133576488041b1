"""
Repository for matching job lifecycle persistence and status lookup.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.matching_job import MatchingJob, MatchingJobStatus


class MatchingJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        job_id: str,
        file_name: str | None = None,
        file_path: str | None = None,
        notify_email: str | None = None,
    ) -> MatchingJob:
        job = MatchingJob(
            id=job_id,
            status=MatchingJobStatus.PENDING,
            progress=0,
            file_name=file_name,
            file_path=file_path,
            notify_email=notify_email,
            total_rows=0,
            processed_rows=0,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: str) -> MatchingJob | None:
        return self._session.get(MatchingJob, job_id)

    def list_jobs(self, *, limit: int = 100, status: str | None = None) -> list[MatchingJob]:
        stmt: Select[tuple[MatchingJob]] = select(MatchingJob)
        if status:
            stmt = stmt.where(MatchingJob.status == status)
        stmt = stmt.order_by(MatchingJob.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def mark_processing(self, *, job_id: str, total_rows: int | None = None) -> MatchingJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = MatchingJobStatus.PROCESSING
        if job.started_at is None:
            job.started_at = datetime.now(timezone.utc)
        job.completed_at = None
        job.error_message = None
        if total_rows is not None:
            job.total_rows = max(0, total_rows)
        return job

    def update_progress(self, *, job_id: str, processed_rows: int, total_rows: int) -> MatchingJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.total_rows = max(0, total_rows)
        job.processed_rows = max(0, min(processed_rows, job.total_rows))
        job.progress = int(job.processed_rows * 100 / job.total_rows) if job.total_rows else 100
        return job

    def mark_completed(
        self,
        *,
        job_id: str,
        result_path: str | None = None,
        success_log_path: str | None = None,
        error_log_path: str | None = None,
        download_links: dict[str, Any] | None = None,
        result_summary: dict[str, Any] | None = None,
    ) -> MatchingJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = MatchingJobStatus.COMPLETED
        job.progress = 100
        job.completed_at = datetime.now(timezone.utc)
        job.result_path = result_path
        job.success_log_path = success_log_path
        job.error_log_path = error_log_path
        job.download_links = download_links
        job.result_summary = result_summary
        job.error_message = None
        return job

    def mark_failed(
        self,
        *,
        job_id: str,
        error_message: str,
        result_summary: dict[str, Any] | None = None,
    ) -> MatchingJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = MatchingJobStatus.FAILED
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error_message
        if result_summary is not None:
            job.result_summary = result_summary
        return job
