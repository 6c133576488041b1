"""
db/models/scraped_category.py

Cached category set for one normalized URL.
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, PortableJSON, TimestampMixin


class CategorySource:
    STRUCTURED_DATA = "structured-data"
    NAVIGATION = "navigation"
    PRODUCTS = "products"
    LINKS = "links"
    FALLBACK = "fallback"


def normalize_cache_url(url: str) -> str:
    return url.strip().lower()


def build_url_hash(url: str) -> str:
    """
    Stable sha256 key of the lowercased, trimmed URL.
    """

    return hashlib.sha256(normalize_cache_url(url).encode("utf-8")).hexdigest()


class ScrapedCategory(Base, TimestampMixin):
    __tablename__ = "scraped_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    categories: Mapped[list[Any]] = mapped_column(PortableJSON, nullable=False, default=list)
    source: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=CategorySource.STRUCTURED_DATA,
        comment="Dominant extraction tier; not per-label provenance",
    )
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ttl_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=86400)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_accessed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    access_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_scraped_categories_expires_at", "expires_at"),
        Index("ix_scraped_categories_scraped_at", "scraped_at"),
        Index("ix_scraped_categories_last_accessed_at", "last_accessed_at"),
    )

    def category_list(self) -> list[str]:
        if not isinstance(self.categories, list):
            return []
        return [str(item) for item in self.categories if isinstance(item, str)]
