"""
app/services/job_status_service.py

Job status sinks: where a running job reports its lifecycle transitions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from sqlalchemy.orm import Session, sessionmaker

from app.scraping.logging_utils import log_event
from db.models.matching_job import MatchingJobStatus
from db.repositories.errors import JobNotFoundError
from db.repositories.matching_job_repository import MatchingJobRepository

logger = logging.getLogger(__name__)


class JobStatusSink(Protocol):
    def report(self, job_id: str, status: str, details: Mapping[str, Any] | None = None) -> None:
        ...

    def progress(self, job_id: str, processed_rows: int, total_rows: int) -> None:
        ...


class LoggingJobStatusSink:
    """
    Sink for local runs without a database: transitions are only logged.
    """

    def __init__(self) -> None:
        self.reports: list[tuple[str, str, dict[str, Any]]] = []

    def report(self, job_id: str, status: str, details: Mapping[str, Any] | None = None) -> None:
        payload = dict(details or {})
        self.reports.append((job_id, status, payload))
        log_event(logger, logging.INFO, "job_status", job_id=job_id, status=status, **payload)

    def progress(self, job_id: str, processed_rows: int, total_rows: int) -> None:
        log_event(
            logger,
            logging.INFO,
            "job_progress",
            job_id=job_id,
            processed_rows=processed_rows,
            total_rows=total_rows,
        )


class SQLAlchemyJobStatusSink:
    """
    Persists transitions to ``matching_jobs``, one short transaction each.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def report(self, job_id: str, status: str, details: Mapping[str, Any] | None = None) -> None:
        payload = dict(details or {})
        with self._session_factory() as db:
            repository = MatchingJobRepository(db)
            try:
                if status == MatchingJobStatus.PROCESSING:
                    job = repository.mark_processing(job_id=job_id, total_rows=payload.get("total_rows"))
                elif status == MatchingJobStatus.COMPLETED:
                    job = repository.mark_completed(
                        job_id=job_id,
                        result_path=payload.get("result_path"),
                        success_log_path=payload.get("success_log_path"),
                        error_log_path=payload.get("error_log_path"),
                        download_links=payload.get("download_links"),
                        result_summary=payload.get("totals"),
                    )
                elif status == MatchingJobStatus.FAILED:
                    job = repository.mark_failed(
                        job_id=job_id,
                        error_message=str(payload.get("error") or "Job failed.")[:2000],
                        result_summary=payload.get("totals"),
                    )
                else:
                    raise ValueError(f"Unsupported job status transition: {status}")
                if job is None:
                    raise JobNotFoundError(job_id)
                db.commit()
            except Exception:
                db.rollback()
                raise

    def progress(self, job_id: str, processed_rows: int, total_rows: int) -> None:
        with self._session_factory() as db:
            repository = MatchingJobRepository(db)
            try:
                if repository.update_progress(
                    job_id=job_id,
                    processed_rows=processed_rows,
                    total_rows=total_rows,
                ) is None:
                    raise JobNotFoundError(job_id)
                db.commit()
            except Exception:
                db.rollback()
                raise
