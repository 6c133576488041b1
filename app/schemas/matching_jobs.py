"""
Schemas for spreadsheet upload, job status and cache endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class MatchingJobAcceptedResponse(BaseModel):
    job_id: str
    status: str
    message: str


class MatchingJobStatusResponse(BaseModel):
    job_id: str
    status: str
    progress: int = 0
    file_name: str | None = None
    total_rows: int = 0
    processed_rows: int = 0
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    download_links: dict[str, str] | None = None
    result_summary: dict[str, Any] | None = None
    error_message: str | None = None


class MatchingJobListResponse(BaseModel):
    jobs: list[MatchingJobStatusResponse] = Field(default_factory=list)


class CacheStatsResponse(BaseModel):
    total: int
    valid: int
    expired: int
    invalid: int


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
