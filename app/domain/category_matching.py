"""
app/domain/category_matching.py

Domain models for category extraction, comparison and row classification.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


class MatchMethod:
    FUZZY = "fuzzy"
    EDIT_DISTANCE = "edit-distance"
    TOKEN_COSINE = "token-cosine"


class MatchStatus:
    PASS = "PASS"
    FAIL = "FAIL"
    MARGINAL = "MARGINAL"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class ExtractionResult:
    """
    Category set scraped from one URL plus the tier that contributed most labels.
    """

    url: str
    categories: tuple[str, ...]
    source: str
    tier_counts: Mapping[str, int] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class MatchCandidate:
    """
    Accepted (client, competitor) label pair from one probe.
    """

    client_label: str
    competitor_label: str
    raw_similarity: float
    method: str

    @property
    def pair(self) -> tuple[str, str]:
        return (self.client_label, self.competitor_label)


@dataclass(frozen=True)
class MatchResult:
    """
    Match candidate with its calibrated confidence.
    """

    client_label: str
    competitor_label: str
    raw_similarity: float
    method: str
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "client_category": self.client_label,
            "competitor_category": self.competitor_label,
            "similarity": round(self.raw_similarity, 4),
            "method": self.method,
            "confidence": round(self.confidence, 4),
        }


@dataclass(frozen=True)
class Classification:
    status: str
    confidence: float
    reason: str


@dataclass(frozen=True)
class RowOutcome:
    """
    Classified outcome of one spreadsheet row. Never mutated once built.
    """

    row_index: int
    client_site: str
    competitor_site: str
    status: str
    confidence: float = 0.0
    match_count: int = 0
    match_details: Mapping[str, Any] = field(default_factory=dict)
    matches: tuple[MatchResult, ...] = ()
    client_categories: tuple[str, ...] = ()
    competitor_categories: tuple[str, ...] = ()
    processing_time_ms: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class JobDescriptor:
    """
    Work item handed over by the queue for one uploaded spreadsheet.
    """

    job_id: str
    file_path: str
    notify_email: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """
    Outcome of running every row of one job through the pipeline.
    """

    job_id: str
    outcomes: list[RowOutcome]
    output_rows: list[dict[str, Any]]
    success_log_path: str
    error_log_path: str

    def status_counts(self) -> dict[str, int]:
        counts = {
            MatchStatus.PASS: 0,
            MatchStatus.FAIL: 0,
            MatchStatus.MARGINAL: 0,
            MatchStatus.SKIPPED: 0,
        }
        for outcome in self.outcomes:
            counts[outcome.status] = counts.get(outcome.status, 0) + 1
        return counts
