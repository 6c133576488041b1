"""
Repository for cached URL category sets.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from db.models.scraped_category import (
    ScrapedCategory,
    build_url_hash,
)


class ScrapedCategoryRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def find_live_by_url(self, *, url: str, now: datetime) -> ScrapedCategory | None:
        """
        Return the valid, unexpired record for the URL, if any.
        """

        stmt = select(ScrapedCategory).where(
            ScrapedCategory.url_hash == build_url_hash(url),
            ScrapedCategory.is_valid.is_(True),
            or_(
                ScrapedCategory.expires_at.is_(None),
                ScrapedCategory.expires_at > now,
            ),
        )
        return self._session.scalars(stmt).first()

    def find_by_url(self, *, url: str) -> ScrapedCategory | None:
        stmt = select(ScrapedCategory).where(ScrapedCategory.url_hash == build_url_hash(url))
        return self._session.scalars(stmt).first()

    def touch(self, record: ScrapedCategory, *, now: datetime) -> None:
        record.last_accessed_at = now
        record.access_count = (record.access_count or 0) + 1

    def upsert(
        self,
        *,
        url: str,
        categories: Sequence[str],
        source: str,
        ttl_seconds: int,
        now: datetime,
    ) -> ScrapedCategory:
        """
        Replace the payload of the existing record for the URL hash or insert one.

        A previously invalidated record for the same hash is revived, since
        url_hash is unique per table.
        """

        expires_at = now + timedelta(seconds=ttl_seconds)
        payload = list(categories)
        record = self.find_by_url(url=url)
        if record is None:
            record = ScrapedCategory(
                url_hash=build_url_hash(url),
                url=url.strip(),
                categories=payload,
                source=source,
                scraped_at=now,
                ttl_seconds=ttl_seconds,
                expires_at=expires_at,
                access_count=0,
                is_valid=True,
            )
            self._session.add(record)
        else:
            record.categories = payload
            record.source = source
            record.scraped_at = now
            record.ttl_seconds = ttl_seconds
            record.expires_at = expires_at
            record.is_valid = True
        self._session.flush()
        return record

    def invalidate(self, *, url: str) -> bool:
        record = self.find_by_url(url=url)
        if record is None:
            return False
        record.is_valid = False
        return True

    def delete_expired(self, *, now: datetime) -> int:
        stmt = delete(ScrapedCategory).where(ScrapedCategory.expires_at < now)
        result = self._session.execute(stmt)
        return int(result.rowcount or 0)

    def stats(self, *, now: datetime) -> dict[str, int]:
        total = self._count()
        expired = self._count(ScrapedCategory.expires_at < now)
        valid = self._count(
            ScrapedCategory.is_valid.is_(True),
            or_(ScrapedCategory.expires_at.is_(None), ScrapedCategory.expires_at > now),
        )
        return {
            "total": total,
            "valid": valid,
            "expired": expired,
            "invalid": max(0, total - expired - valid),
        }

    def _count(self, *criteria: object) -> int:
        stmt = select(func.count()).select_from(ScrapedCategory)
        if criteria:
            stmt = stmt.where(*criteria)
        return int(self._session.scalar(stmt) or 0)
