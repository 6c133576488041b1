"""
SQLAlchemy-backed category cache.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.scraping.logging_utils import log_event
from app.scraping.storage.base import CategoryCache
from db.repositories.scraped_category_repository import ScrapedCategoryRepository

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SQLAlchemyCategoryCache(CategoryCache):
    """
    Persist category sets in ``scraped_categories``, one record per URL hash.

    Every call opens its own session so the cache can be shared by the
    scrape worker threads of concurrent jobs. Each write commits one record
    in a single transaction.
    """

    def __init__(
        self,
        *,
        session_factory: Callable[[], Session],
        ttl_seconds: int = 86400,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._ttl_seconds = max(1, ttl_seconds)
        self._clock = clock

    def lookup(self, url: str) -> list[str] | None:
        now = self._clock()
        with self._session_factory() as db:
            repository = ScrapedCategoryRepository(db)
            try:
                record = repository.find_live_by_url(url=url, now=now)
            except SQLAlchemyError as exc:
                db.rollback()
                log_event(logger, logging.WARNING, "category_cache_read_failed", url=url, error=str(exc))
                return None
            if record is None:
                return None

            categories = record.category_list()
            try:
                repository.touch(record, now=now)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                log_event(logger, logging.WARNING, "category_cache_touch_failed", url=url, error=str(exc))

        log_event(logger, logging.DEBUG, "category_cache_hit", url=url, categories=len(categories))
        return categories

    def store(self, url: str, categories: Sequence[str], source: str) -> None:
        for attempt in range(2):
            with self._session_factory() as db:
                try:
                    ScrapedCategoryRepository(db).upsert(
                        url=url,
                        categories=categories,
                        source=source,
                        ttl_seconds=self._ttl_seconds,
                        now=self._clock(),
                    )
                    db.commit()
                    return
                except IntegrityError:
                    # Another worker inserted the same hash first; retry as update.
                    db.rollback()
                    if attempt == 0:
                        continue
                    log_event(logger, logging.WARNING, "category_cache_store_conflict", url=url)
                    return
                except SQLAlchemyError as exc:
                    db.rollback()
                    log_event(logger, logging.WARNING, "category_cache_store_failed", url=url, error=str(exc))
                    return

    def invalidate(self, url: str) -> bool:
        with self._session_factory() as db:
            try:
                changed = ScrapedCategoryRepository(db).invalidate(url=url)
                db.commit()
                return changed
            except SQLAlchemyError:
                db.rollback()
                raise

    def cleanup_expired(self) -> int:
        with self._session_factory() as db:
            try:
                deleted = ScrapedCategoryRepository(db).delete_expired(now=self._clock())
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                raise
        log_event(logger, logging.INFO, "category_cache_cleanup", deleted=deleted)
        return deleted

    def stats(self) -> dict[str, int]:
        with self._session_factory() as db:
            return ScrapedCategoryRepository(db).stats(now=self._clock())
