"""
Single-page category extractor.
"""

from __future__ import annotations

import logging
import threading

import requests

from app.config import ExtractorSettings
from app.domain.category_matching import ExtractionResult
from app.scraping.logging_utils import elapsed_ms, log_event, start_timer
from app.scraping.parsing.category_parsers import extract_categories_from_html
from db.models.scraped_category import CategorySource

logger = logging.getLogger(__name__)


def normalize_site_url(url: str) -> str:
    """
    Trim the URL and prefix ``http://`` when no scheme is present.
    """

    stripped = url.strip()
    if not stripped:
        return stripped
    if not stripped.lower().startswith(("http://", "https://")):
        return f"http://{stripped}"
    return stripped


class CategoryExtractor:
    """
    Fetches one page per site and derives its category set.

    ``extract`` never raises: transport, HTTP status and parse failures are
    logged and reported as an empty category set.
    """

    def __init__(
        self,
        *,
        settings: ExtractorSettings,
        session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self._shared_session = session
        if session is not None:
            session.max_redirects = settings.max_redirects
        self._local = threading.local()

    def extract(self, url: str) -> list[str]:
        return list(self.extract_with_source(url).categories)

    def extract_with_source(self, url: str) -> ExtractionResult:
        target = normalize_site_url(url)
        if not target:
            return ExtractionResult(url=url, categories=(), source=CategorySource.FALLBACK)

        started = start_timer()
        try:
            response = self._session().get(
                target,
                headers=self.settings.request_headers(),
                timeout=self.settings.timeout_seconds,
                allow_redirects=True,
            )
            response.raise_for_status()
            category_set = extract_categories_from_html(
                response.text or "",
                max_categories=self.settings.max_categories,
            )
        except Exception as exc:
            log_event(
                logger,
                logging.WARNING,
                "category_extraction_failed",
                url=target,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return ExtractionResult(
                url=target,
                categories=(),
                source=CategorySource.FALLBACK,
                error=f"{type(exc).__name__}: {exc}",
            )

        log_event(
            logger,
            logging.INFO,
            "category_extraction_completed",
            url=target,
            categories=len(category_set.categories),
            source=category_set.source,
            elapsed_ms=elapsed_ms(started),
        )
        return ExtractionResult(
            url=target,
            categories=category_set.categories,
            source=category_set.source,
            tier_counts=category_set.tier_counts,
        )

    def _session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            # requests.Session is not documented as thread-safe; one per worker thread.
            session = requests.Session()
            session.max_redirects = self.settings.max_redirects
            self._local.session = session
        return session
