"""
app/domain package marker.
"""

from app.domain.category_matching import (
    BatchResult,
    Classification,
    ExtractionResult,
    JobDescriptor,
    MatchCandidate,
    MatchMethod,
    MatchResult,
    MatchStatus,
    RowOutcome,
)

__all__ = [
    "BatchResult",
    "Classification",
    "ExtractionResult",
    "JobDescriptor",
    "MatchCandidate",
    "MatchMethod",
    "MatchResult",
    "MatchStatus",
    "RowOutcome",
]
