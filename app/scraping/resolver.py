"""
Chunked, cache-through category resolution for a set of URLs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait

from app.scraping.extractor import CategoryExtractor
from app.scraping.logging_utils import log_event
from app.scraping.storage.base import CategoryCache

logger = logging.getLogger(__name__)


def distinct_urls(urls: Iterable[str]) -> list[str]:
    """
    Trimmed, non-empty URLs in first-seen order.
    """

    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        trimmed = (url or "").strip()
        if trimmed and trimmed not in seen:
            seen.add(trimmed)
            ordered.append(trimmed)
    return ordered


class CategoryResolver:
    """
    Resolve URLs to category sets in fixed-size concurrent chunks.

    All lookups of one chunk run in parallel and the whole chunk is joined
    before the next one starts. A failing URL resolves to an empty list and
    never aborts the join.
    """

    def __init__(
        self,
        *,
        extractor: CategoryExtractor,
        cache: CategoryCache | None = None,
        chunk_size: int = 5,
    ) -> None:
        self._extractor = extractor
        self._cache = cache
        self._chunk_size = max(1, chunk_size)

    def resolve(self, urls: Sequence[str]) -> dict[str, list[str]]:
        targets = distinct_urls(urls)
        resolved: dict[str, list[str]] = {}
        if not targets:
            return resolved

        with ThreadPoolExecutor(
            max_workers=self._chunk_size,
            thread_name_prefix="category-scrape",
        ) as executor:
            for start in range(0, len(targets), self._chunk_size):
                chunk = targets[start : start + self._chunk_size]
                futures: dict[str, Future[list[str]]] = {
                    url: executor.submit(self.resolve_one, url) for url in chunk
                }
                wait(futures.values())

                for url, future in futures.items():
                    try:
                        resolved[url] = future.result()
                    except Exception as exc:
                        log_event(
                            logger,
                            logging.ERROR,
                            "category_resolution_failed",
                            url=url,
                            error=str(exc),
                        )
                        resolved[url] = []

                log_event(
                    logger,
                    logging.INFO,
                    "scrape_chunk_completed",
                    chunk_index=start // self._chunk_size,
                    urls=len(chunk),
                    resolved=sum(1 for url in chunk if resolved.get(url)),
                )
        return resolved

    def resolve_one(self, url: str) -> list[str]:
        if self._cache is not None:
            cached = self._cache.lookup(url)
            if cached is not None:
                return cached

        result = self._extractor.extract_with_source(url)
        categories = list(result.categories)
        # Transport failures are not cached so the next job retries the site.
        if self._cache is not None and result.error is None:
            self._cache.store(url, categories, result.source)
        return categories
