"""
app/services/batch_orchestrator.py

Runs every row of one job through category resolution and classification.

Rows are handled in fixed-size sub-batches, one after another. Within a
sub-batch the distinct URLs not yet resolved for this job are scraped
concurrently by the resolver, then the rows are classified synchronously in
their original order. Each distinct URL is resolved at most once per job.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from app.domain.category_matching import BatchResult, MatchStatus, RowOutcome
from app.scraping.logging_utils import log_event
from app.scraping.resolver import CategoryResolver, distinct_urls
from app.services.job_logs import JobLogWriter
from app.services.row_processor import RowProcessor, row_sites

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

OUTPUT_COLUMNS: tuple[str, ...] = (
    "status",
    "confidence",
    "similarity_score",
    "match_count",
    "matching_details",
    "error",
)


def build_output_row(row: Mapping[str, Any], outcome: RowOutcome) -> dict[str, Any]:
    """
    Merge an outcome onto its original row fields.
    """

    merged = dict(row)
    confidence = round(outcome.confidence, 4)
    merged.update(
        {
            "status": outcome.status,
            "confidence": confidence,
            "similarity_score": confidence,
            "match_count": outcome.match_count,
            "matching_details": json.dumps(dict(outcome.match_details), sort_keys=True),
            "error": outcome.error or "",
        }
    )
    return merged


class BatchOrchestrator:
    def __init__(
        self,
        *,
        resolver: CategoryResolver,
        row_processor: RowProcessor,
        logs_dir: str | Path,
        row_batch_size: int = 5,
    ) -> None:
        self._resolver = resolver
        self._row_processor = row_processor
        self._logs_dir = Path(logs_dir)
        self._row_batch_size = max(1, row_batch_size)

    def run(
        self,
        *,
        job_id: str,
        rows: Sequence[Mapping[str, Any]],
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        total = len(rows)
        outcomes: list[RowOutcome] = []
        categories_by_url: dict[str, list[str]] = {}

        with JobLogWriter(job_id=job_id, logs_dir=self._logs_dir) as job_log:
            for start in range(0, total, self._row_batch_size):
                batch = rows[start : start + self._row_batch_size]
                batch_number = start // self._row_batch_size + 1
                log_event(
                    logger,
                    logging.INFO,
                    "row_batch_started",
                    job_id=job_id,
                    batch=batch_number,
                    batches=(total + self._row_batch_size - 1) // self._row_batch_size,
                )

                self._resolve_batch_urls(job_id=job_id, batch=batch, categories_by_url=categories_by_url)

                for offset, row in enumerate(batch):
                    outcome = self._process_row(
                        job_id=job_id,
                        row_index=start + offset + 1,
                        row=row,
                        categories_by_url=categories_by_url,
                    )
                    self._record_log_line(job_log, outcome, job_id)
                    outcomes.append(outcome)

                if on_progress is not None:
                    self._report_progress(on_progress, len(outcomes), total, job_id)

        outcomes.sort(key=lambda outcome: outcome.row_index)
        output_rows = [build_output_row(row, outcome) for row, outcome in zip(rows, outcomes)]
        return BatchResult(
            job_id=job_id,
            outcomes=outcomes,
            output_rows=output_rows,
            success_log_path=str(job_log.success_path),
            error_log_path=str(job_log.error_path),
        )

    def _resolve_batch_urls(
        self,
        *,
        job_id: str,
        batch: Sequence[Mapping[str, Any]],
        categories_by_url: dict[str, list[str]],
    ) -> None:
        urls: list[str] = []
        for row in batch:
            try:
                urls.extend(row_sites(row))
            except Exception as exc:
                # Malformed rows surface again in _process_row with an error outcome.
                log_event(logger, logging.WARNING, "row_sites_unreadable", job_id=job_id, error=str(exc))
        pending = [url for url in distinct_urls(urls) if url not in categories_by_url]
        if not pending:
            return
        try:
            categories_by_url.update(self._resolver.resolve(pending))
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "batch_resolution_failed",
                job_id=job_id,
                urls=len(pending),
                error=str(exc),
            )
            for url in pending:
                categories_by_url.setdefault(url, [])

    def _process_row(
        self,
        *,
        job_id: str,
        row_index: int,
        row: Mapping[str, Any],
        categories_by_url: Mapping[str, Sequence[str]],
    ) -> RowOutcome:
        client_site = ""
        competitor_site = ""
        try:
            client_site, competitor_site = row_sites(row)
            return self._row_processor.process(
                row_index=row_index,
                client_site=client_site,
                competitor_site=competitor_site,
                categories_by_url=categories_by_url,
            )
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "row_classification_failed",
                job_id=job_id,
                row_index=row_index,
                client_site=client_site,
                competitor_site=competitor_site,
                error=str(exc),
            )
            return RowOutcome(
                row_index=row_index,
                client_site=client_site,
                competitor_site=competitor_site,
                status=MatchStatus.FAIL,
                error=f"{type(exc).__name__}: {exc}",
            )

    @staticmethod
    def _record_log_line(job_log: JobLogWriter, outcome: RowOutcome, job_id: str) -> None:
        try:
            job_log.record(outcome)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "row_log_write_failed",
                job_id=job_id,
                row_index=outcome.row_index,
                status=outcome.status,
                error=str(exc),
            )

    @staticmethod
    def _report_progress(callback: ProgressCallback, processed: int, total: int, job_id: str) -> None:
        try:
            callback(processed, total)
        except Exception as exc:
            log_event(logger, logging.WARNING, "progress_report_failed", job_id=job_id, error=str(exc))
