"""
Job service for spreadsheet matching: submission, background execution,
status persistence and artifact lookup.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any, Protocol

from fastapi import BackgroundTasks, UploadFile
from sqlalchemy.orm import Session, sessionmaker

from app.config import (
    BatchSettings,
    get_batch_settings,
    get_cache_settings,
    get_extractor_settings,
    get_matching_settings,
)
from app.domain.category_matching import BatchResult, JobDescriptor, RowOutcome
from app.matching.engine import SimilarityEngine
from app.scraping.extractor import CategoryExtractor
from app.scraping.resolver import CategoryResolver
from app.scraping.storage.sqlalchemy_cache import SQLAlchemyCategoryCache
from app.services.batch_orchestrator import BatchOrchestrator
from app.services.email_service import EmailNotifier
from app.services.job_status_service import JobStatusSink, SQLAlchemyJobStatusSink
from app.services.row_processor import RowProcessor
from app.services.spreadsheet_codec import (
    parse_rows,
    result_path_for,
    spreadsheet_extension,
    write_rows,
)
from db.models.matching_job import MatchingJob, MatchingJobStatus
from db.repositories.errors import FileStorageError, JobNotFoundError
from db.repositories.matching_job_repository import MatchingJobRepository
from db.repositories.processed_result_repository import ProcessedResultRepository
from db.repositories.storage import LocalUploadStorage, UploadStorageBackend

logger = logging.getLogger(__name__)

DOWNLOAD_KINDS: tuple[str, ...] = ("excel", "success", "error")


class MatchingTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class JobNotCompletedError(RuntimeError):
    """
    Raised when artifacts are requested for a job that has not completed.
    """

    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(f"Matching job {job_id} is not completed (status={status}).")
        self.job_id = job_id
        self.status = status


class DownloadNotAvailableError(ValueError):
    """
    Raised for an unknown artifact kind or an artifact missing on disk.
    """


def build_download_links(base_url: str, job_id: str) -> dict[str, str]:
    root = base_url.rstrip("/")
    return {kind: f"{root}/download/{job_id}/{kind}" for kind in DOWNLOAD_KINDS}


def build_batch_orchestrator(
    *,
    session_factory: Callable[[], Session] | None,
    use_cache: bool = True,
    batch_settings: BatchSettings | None = None,
) -> BatchOrchestrator:
    """
    Wire extractor, cache, resolver and similarity engine from settings.
    """

    settings = batch_settings or get_batch_settings()
    cache_settings = get_cache_settings()
    cache = None
    if use_cache and cache_settings.enabled and session_factory is not None:
        cache = SQLAlchemyCategoryCache(
            session_factory=session_factory,
            ttl_seconds=cache_settings.ttl_seconds,
        )

    matching_settings = get_matching_settings()
    resolver = CategoryResolver(
        extractor=CategoryExtractor(settings=get_extractor_settings()),
        cache=cache,
        chunk_size=settings.scrape_chunk_size,
    )
    return BatchOrchestrator(
        resolver=resolver,
        row_processor=RowProcessor(
            engine=SimilarityEngine(matching_settings),
            thresholds=matching_settings.thresholds,
        ),
        logs_dir=settings.logs_dir,
        row_batch_size=settings.row_batch_size,
    )


def outcome_to_record(outcome: RowOutcome) -> dict[str, Any]:
    return {
        "row_index": outcome.row_index,
        "client_site": outcome.client_site,
        "competitor_site": outcome.competitor_site,
        "status": outcome.status,
        "confidence": outcome.confidence,
        "matched_categories_count": outcome.match_count,
        "client_categories": list(outcome.client_categories),
        "competitor_categories": list(outcome.competitor_categories),
        "matched_categories": [match.to_dict() for match in outcome.matches],
        "matching_details": dict(outcome.match_details),
        "processing_time_ms": outcome.processing_time_ms,
        "error_message": outcome.error,
    }


class MatchingJobService:
    """
    Coordinates upload persistence, job creation, background execution and
    terminal status reporting.

    Every executed job ends ``completed`` or ``failed`` and its stored input
    file is removed exactly once, after the run.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        storage: UploadStorageBackend | None = None,
        status_sink: JobStatusSink | None = None,
        orchestrator: BatchOrchestrator | None = None,
        notifier: EmailNotifier | None = None,
        batch_settings: BatchSettings | None = None,
        persist_results: bool = True,
    ) -> None:
        if session_factory is None:
            from db.session import get_session_factory

            self._session_factory = get_session_factory()
        else:
            self._session_factory = session_factory

        self._settings = batch_settings or get_batch_settings()
        self._storage = storage or LocalUploadStorage(self._settings.uploads_dir)
        self._status_sink = status_sink or SQLAlchemyJobStatusSink(self._session_factory)
        self._orchestrator = orchestrator or build_batch_orchestrator(
            session_factory=self._session_factory,
            batch_settings=self._settings,
        )
        self._notifier = notifier or EmailNotifier()
        self._persist_results = persist_results

    def submit(
        self,
        *,
        db: Session,
        executor: MatchingTaskExecutor,
        upload_file: UploadFile,
        notify_email: str | None = None,
    ) -> MatchingJob:
        file_name = upload_file.filename or "upload.xlsx"
        spreadsheet_extension(file_name)

        job_id = str(uuid.uuid4())
        storage_path = self._storage.save(job_id=job_id, file_name=file_name, stream=upload_file.file)

        repository = MatchingJobRepository(db)
        try:
            with db.begin():
                job = repository.create_job(
                    job_id=job_id,
                    file_name=file_name,
                    file_path=storage_path,
                    notify_email=notify_email,
                )
        except Exception:
            self._delete_input(job_id, storage_path)
            raise

        try:
            executor.submit(
                self.run_job,
                JobDescriptor(job_id=job_id, file_path=storage_path, notify_email=notify_email),
            )
        except Exception:
            self._delete_input(job_id, storage_path)
            with db.begin():
                repository.mark_failed(
                    job_id=job_id,
                    error_message="Failed to schedule matching job.",
                )
            raise

        logger.info("Matching job queued id=%s file=%s", job_id, file_name)
        return job

    def get_job_status(self, *, db: Session, job_id: str) -> MatchingJob | None:
        return MatchingJobRepository(db).get_job(job_id)

    def list_job_statuses(
        self,
        *,
        db: Session,
        limit: int = 100,
        status: str | None = None,
    ) -> list[MatchingJob]:
        return MatchingJobRepository(db).list_jobs(limit=limit, status=status)

    def download_path(self, *, db: Session, job_id: str, kind: str) -> Path:
        job = MatchingJobRepository(db).get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        if job.status != MatchingJobStatus.COMPLETED:
            raise JobNotCompletedError(job_id, job.status)

        paths = {
            "excel": job.result_path,
            "success": job.success_log_path,
            "error": job.error_log_path,
        }
        if kind not in paths:
            raise DownloadNotAvailableError(
                f"Unknown download type '{kind}'. Expected one of: {', '.join(DOWNLOAD_KINDS)}."
            )
        raw_path = paths[kind]
        if not raw_path or not Path(raw_path).is_file():
            raise DownloadNotAvailableError(f"File for '{kind}' is not available for job {job_id}.")
        return Path(raw_path)

    def run_job(self, descriptor: JobDescriptor) -> BatchResult | None:
        """
        Execute one job end to end. Never raises; failures end in ``failed``.
        """

        job_id = descriptor.job_id
        try:
            self._status_sink.report(job_id, MatchingJobStatus.PROCESSING)

            rows = parse_rows(descriptor.file_path)
            self._status_sink.progress(job_id, 0, len(rows))

            result = self._orchestrator.run(
                job_id=job_id,
                rows=rows,
                on_progress=lambda processed, total: self._status_sink.progress(job_id, processed, total),
            )

            result_path = write_rows(
                result_path_for(self._settings.results_dir, job_id, Path(descriptor.file_path).name),
                result.output_rows,
            )
            if self._persist_results:
                self._store_outcomes(job_id, result)

            download_links = build_download_links(self._settings.base_url, job_id)
            totals = {"total_rows": len(rows)}
            totals.update({status.lower(): count for status, count in result.status_counts().items()})
            self._status_sink.report(
                job_id,
                MatchingJobStatus.COMPLETED,
                {
                    "result_path": str(result_path),
                    "success_log_path": result.success_log_path,
                    "error_log_path": result.error_log_path,
                    "download_links": download_links,
                    "totals": totals,
                },
            )
            logger.info("Matching job completed id=%s totals=%s", job_id, totals)
        except Exception as exc:
            self._mark_job_failed(job_id=job_id, exc=exc)
            return None
        finally:
            self._delete_input(job_id, descriptor.file_path)

        if descriptor.notify_email:
            self._notify(descriptor.notify_email, job_id, download_links)
        return result

    def _store_outcomes(self, job_id: str, result: BatchResult) -> None:
        with self._session_factory() as db:
            repository = ProcessedResultRepository(db)
            try:
                repository.replace_for_job(
                    job_id=job_id,
                    rows=[outcome_to_record(outcome) for outcome in result.outcomes],
                )
                db.commit()
            except Exception:
                db.rollback()
                raise

    def _notify(self, email: str, job_id: str, download_links: dict[str, str]) -> None:
        try:
            self._notifier.send_processing_complete(
                email=email,
                job_id=job_id,
                download_links=download_links,
            )
        except Exception:
            logger.exception("Failed to send completion email id=%s recipient=%s", job_id, email)

    def _mark_job_failed(self, *, job_id: str, exc: Exception) -> None:
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Matching job failed id=%s error=%s", job_id, error_message)
        try:
            self._status_sink.report(
                job_id,
                MatchingJobStatus.FAILED,
                {"error": error_message[:2000]},
            )
        except Exception:
            logger.exception("Failed to persist failed matching job state id=%s", job_id)

    def _delete_input(self, job_id: str, storage_path: str) -> None:
        try:
            self._storage.delete(storage_path=storage_path)
        except FileStorageError:
            logger.exception("Failed to delete job input id=%s path=%s", job_id, storage_path)


@lru_cache(maxsize=1)
def get_matching_job_service() -> MatchingJobService:
    return MatchingJobService()
