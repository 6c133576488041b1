"""
app/services/row_processor.py

Classify one spreadsheet row from already-resolved category sets.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from app.config import MatchThresholds
from app.domain.category_matching import MatchStatus, RowOutcome
from app.matching.engine import SimilarityEngine
from app.scraping.logging_utils import elapsed_ms, start_timer

CLIENT_SITE_COLUMNS: tuple[str, ...] = ("client_site", "website", "client")
COMPETITOR_SITE_COLUMNS: tuple[str, ...] = ("competitor_site", "competitors_site", "competitor")


def _first_present(row: Mapping[str, Any], columns: Sequence[str]) -> str:
    for column in columns:
        value = row.get(column)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def row_sites(row: Mapping[str, Any]) -> tuple[str, str]:
    """
    Trimmed (client_site, competitor_site) of a row; blank when missing.
    """

    return (
        _first_present(row, CLIENT_SITE_COLUMNS),
        _first_present(row, COMPETITOR_SITE_COLUMNS),
    )


class RowProcessor:
    """
    Applies the similarity engine to one (client, competitor) pair.

    Performs no I/O: category sets must already be resolved.
    """

    def __init__(
        self,
        *,
        engine: SimilarityEngine,
        thresholds: MatchThresholds | None = None,
    ) -> None:
        self._engine = engine
        self._thresholds = thresholds or engine.settings.thresholds

    def process(
        self,
        *,
        row_index: int,
        client_site: str,
        competitor_site: str,
        categories_by_url: Mapping[str, Sequence[str]],
    ) -> RowOutcome:
        client_site = (client_site or "").strip()
        competitor_site = (competitor_site or "").strip()
        if not client_site or not competitor_site:
            return RowOutcome(
                row_index=row_index,
                client_site=client_site,
                competitor_site=competitor_site,
                status=MatchStatus.SKIPPED,
                match_details={"reason": "missing client_site or competitor_site"},
            )

        started = start_timer()
        client_categories = tuple(categories_by_url.get(client_site, ()))
        competitor_categories = tuple(categories_by_url.get(competitor_site, ()))

        matches = self._engine.compare(client_categories, competitor_categories)
        classification = self._engine.classify(matches, self._thresholds)
        high_confidence = sum(
            1 for match in matches if match.confidence >= self._thresholds.min_confidence
        )

        return RowOutcome(
            row_index=row_index,
            client_site=client_site,
            competitor_site=competitor_site,
            status=classification.status,
            confidence=classification.confidence,
            match_count=len(matches),
            match_details={
                "total_matches": len(matches),
                "high_confidence_matches": high_confidence,
                "average_confidence": f"{round(classification.confidence * 100)}%",
                "reason": classification.reason,
            },
            matches=tuple(matches),
            client_categories=client_categories,
            competitor_categories=competitor_categories,
            processing_time_ms=elapsed_ms(started),
        )
