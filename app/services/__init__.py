"""
app/services package marker.
"""

from app.services.batch_orchestrator import BatchOrchestrator, build_output_row
from app.services.email_service import EmailNotifier
from app.services.job_status_service import (
    JobStatusSink,
    LoggingJobStatusSink,
    SQLAlchemyJobStatusSink,
)
from app.services.matching_job_service import (
    DownloadNotAvailableError,
    FastAPIBackgroundTaskExecutor,
    JobNotCompletedError,
    MatchingJobService,
    get_matching_job_service,
)
from app.services.row_processor import RowProcessor
from app.services.spreadsheet_codec import SpreadsheetReadError, UnsupportedSpreadsheetError

__all__ = [
    "BatchOrchestrator",
    "build_output_row",
    "DownloadNotAvailableError",
    "EmailNotifier",
    "FastAPIBackgroundTaskExecutor",
    "JobNotCompletedError",
    "JobStatusSink",
    "LoggingJobStatusSink",
    "MatchingJobService",
    "get_matching_job_service",
    "RowProcessor",
    "SQLAlchemyJobStatusSink",
    "SpreadsheetReadError",
    "UnsupportedSpreadsheetError",
]
