"""
app/schemas package marker.
"""

from app.schemas.matching_jobs import (
    CacheStatsResponse,
    HealthResponse,
    MatchingJobAcceptedResponse,
    MatchingJobListResponse,
    MatchingJobStatusResponse,
)

__all__ = [
    "CacheStatsResponse",
    "HealthResponse",
    "MatchingJobAcceptedResponse",
    "MatchingJobListResponse",
    "MatchingJobStatusResponse",
]
