"""
app/services/job_logs.py

Plain-text success and error logs written per matching job.
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import TextIO

from app.domain.category_matching import RowOutcome


def success_log_path(logs_dir: str | Path, job_id: str) -> Path:
    return Path(logs_dir) / f"{job_id}_success.log"


def error_log_path(logs_dir: str | Path, job_id: str) -> Path:
    return Path(logs_dir) / f"{job_id}_error.log"


class JobLogWriter:
    """
    Writes one line per row to ``<job_id>_success.log`` or ``<job_id>_error.log``.

    Both files are truncated when opened so a redelivered job replaces the
    logs of its previous attempt; lines are then appended in row order.
    """

    def __init__(self, *, job_id: str, logs_dir: str | Path) -> None:
        self.job_id = job_id
        self.success_path = success_log_path(logs_dir, job_id)
        self.error_path = error_log_path(logs_dir, job_id)
        self._success: TextIO | None = None
        self._error: TextIO | None = None

    def __enter__(self) -> "JobLogWriter":
        self.success_path.parent.mkdir(parents=True, exist_ok=True)
        self._success = self.success_path.open("w", encoding="utf-8")
        self._error = self.error_path.open("w", encoding="utf-8")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        for handle in (self._success, self._error):
            if handle is not None:
                handle.close()
        self._success = None
        self._error = None

    def record(self, outcome: RowOutcome) -> None:
        if outcome.error is not None:
            self._write_error(
                f"Job {self.job_id} - Error processing row {outcome.row_index}: "
                f"Client: {outcome.client_site}, Competitor: {outcome.competitor_site}, "
                f"Error: {outcome.error}"
            )
        elif outcome.status == "SKIPPED":
            self._write_error(
                f"Job {self.job_id} - Skipping row {outcome.row_index} due to missing "
                f"client_site or competitor_site: Client: {outcome.client_site or '-'}, "
                f"Competitor: {outcome.competitor_site or '-'}"
            )
        else:
            self._write_success(
                f"Job {self.job_id} - Row {outcome.row_index} processed: "
                f"Client: {outcome.client_site}, Competitor: {outcome.competitor_site}, "
                f"Status: {outcome.status}, Confidence: {outcome.confidence * 100:.1f}%, "
                f"Matches: {outcome.match_count}"
            )

    def _write_success(self, line: str) -> None:
        if self._success is None:
            raise RuntimeError("JobLogWriter used outside of its context.")
        self._success.write(line + "\n")
        self._success.flush()

    def _write_error(self, line: str) -> None:
        if self._error is None:
            raise RuntimeError("JobLogWriter used outside of its context.")
        self._error.write(line + "\n")
        self._error.flush()
