"""
Repository for per-row matching outcomes.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.processed_result import ProcessedResult

HIGH_CONFIDENCE_STAT_THRESHOLD = 0.8


class ProcessedResultRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def replace_for_job(self, *, job_id: str, rows: Sequence[dict[str, Any]]) -> int:
        """
        Drop any earlier results of the job and insert the given rows.

        Redelivered jobs overwrite their previous outcome instead of
        appending duplicates.
        """

        self._session.execute(delete(ProcessedResult).where(ProcessedResult.job_id == job_id))
        records = [ProcessedResult(job_id=job_id, **row) for row in rows]
        self._session.add_all(records)
        self._session.flush()
        return len(records)

    def results_for_job(self, job_id: str) -> list[ProcessedResult]:
        stmt = (
            select(ProcessedResult)
            .where(ProcessedResult.job_id == job_id)
            .order_by(ProcessedResult.row_index.asc())
        )
        return list(self._session.scalars(stmt).all())

    def stats_for_job(self, job_id: str) -> dict[str, Any]:
        results = self.results_for_job(job_id)
        stats: dict[str, Any] = {
            "total": len(results),
            "passed": 0,
            "failed": 0,
            "marginal": 0,
            "skipped": 0,
            "average_confidence": 0.0,
            "high_confidence_matches": 0,
        }
        counters = {"PASS": "passed", "FAIL": "failed", "MARGINAL": "marginal", "SKIPPED": "skipped"}

        total_confidence = 0.0
        for result in results:
            key = counters.get(result.status)
            if key is not None:
                stats[key] += 1
            confidence = float(result.confidence or 0.0)
            total_confidence += confidence
            if confidence >= HIGH_CONFIDENCE_STAT_THRESHOLD:
                stats["high_confidence_matches"] += 1

        if results:
            stats["average_confidence"] = total_confidence / len(results)
        return stats

    def delete_older_than(self, *, days: int, now: datetime | None = None) -> int:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=max(0, days))
        result = self._session.execute(
            delete(ProcessedResult).where(ProcessedResult.created_at < cutoff)
        )
        return int(result.rowcount or 0)
