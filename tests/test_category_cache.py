"""
tests/test_category_cache.py

Category cache and cache-through resolution against in-memory SQLite.

Coverage
--------
- store / lookup round trip with URL normalization
- access statistics on hit
- TTL expiry driven by an injected clock
- forced expiry triggers a fresh scrape and refreshes the record
- aggregate stats and sweep of expired records
- failed scrapes are not cached, empty successful scrapes are
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy import update

from app.domain.category_matching import ExtractionResult
from app.scraping.resolver import CategoryResolver, distinct_urls
from app.scraping.storage.sqlalchemy_cache import SQLAlchemyCategoryCache
from db.models.scraped_category import CategorySource, ScrapedCategory, build_url_hash
from db.repositories.scraped_category_repository import ScrapedCategoryRepository


def as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes.
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class FakeExtractor:
    def __init__(self, results: dict[str, ExtractionResult] | None = None) -> None:
        self.results = results or {}
        self.calls: list[str] = []

    def extract_with_source(self, url: str) -> ExtractionResult:
        self.calls.append(url)
        if url in self.results:
            return self.results[url]
        return ExtractionResult(
            url=url,
            categories=("shoes", "bags"),
            source=CategorySource.NAVIGATION,
        )


@pytest.fixture()
def cache(session_factory: Any, clock: Any) -> SQLAlchemyCategoryCache:
    return SQLAlchemyCategoryCache(session_factory=session_factory, ttl_seconds=3600, clock=clock)


def _record(session_factory: Any, url: str) -> ScrapedCategory | None:
    with session_factory() as db:
        return ScrapedCategoryRepository(db).find_by_url(url=url)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TestSQLAlchemyCategoryCache:
    def test_lookup_miss_on_empty_cache(self, cache: SQLAlchemyCategoryCache) -> None:
        assert cache.lookup("https://example.com") is None

    def test_store_then_lookup(self, cache: SQLAlchemyCategoryCache) -> None:
        cache.store("https://example.com", ["shoes", "bags"], CategorySource.NAVIGATION)
        assert cache.lookup("https://example.com") == ["shoes", "bags"]

    def test_url_key_ignores_case_and_whitespace(self, cache: SQLAlchemyCategoryCache) -> None:
        cache.store("  https://Example.com ", ["toys"], CategorySource.LINKS)
        assert cache.lookup("https://example.com") == ["toys"]
        assert build_url_hash("HTTPS://EXAMPLE.COM") == build_url_hash("https://example.com ")

    def test_hit_updates_access_stats(self, cache: SQLAlchemyCategoryCache, session_factory: Any, clock: Any) -> None:
        cache.store("https://example.com", ["toys"], CategorySource.LINKS)
        clock.advance(minutes=5)
        cache.lookup("https://example.com")
        cache.lookup("https://example.com")

        record = _record(session_factory, "https://example.com")
        assert record is not None
        assert record.access_count == 2
        assert as_utc(record.last_accessed_at) == clock.now

    def test_store_overwrites_single_record(self, cache: SQLAlchemyCategoryCache, session_factory: Any) -> None:
        cache.store("https://example.com", ["toys"], CategorySource.LINKS)
        cache.store("https://example.com", ["games", "puzzles"], CategorySource.PRODUCTS)

        assert cache.lookup("https://example.com") == ["games", "puzzles"]
        assert cache.stats()["total"] == 1
        record = _record(session_factory, "https://example.com")
        assert record is not None
        assert record.source == CategorySource.PRODUCTS

    def test_entry_expires_after_ttl(self, cache: SQLAlchemyCategoryCache, clock: Any) -> None:
        cache.store("https://example.com", ["toys"], CategorySource.LINKS)
        clock.advance(seconds=3599)
        assert cache.lookup("https://example.com") == ["toys"]
        clock.advance(seconds=2)
        assert cache.lookup("https://example.com") is None

    def test_empty_category_set_is_a_hit(self, cache: SQLAlchemyCategoryCache) -> None:
        cache.store("https://bare.example.com", [], CategorySource.FALLBACK)
        assert cache.lookup("https://bare.example.com") == []

    def test_invalidated_entry_is_a_miss(self, cache: SQLAlchemyCategoryCache) -> None:
        cache.store("https://example.com", ["toys"], CategorySource.LINKS)
        assert cache.invalidate("https://example.com") is True
        assert cache.lookup("https://example.com") is None
        assert cache.invalidate("https://unknown.example.com") is False

    def test_stats_and_cleanup(self, cache: SQLAlchemyCategoryCache, clock: Any) -> None:
        cache.store("https://a.example.com", ["toys"], CategorySource.LINKS)
        clock.advance(minutes=30)
        cache.store("https://b.example.com", ["books"], CategorySource.LINKS)
        clock.advance(minutes=45)

        assert cache.stats() == {"total": 2, "valid": 1, "expired": 1, "invalid": 0}

        cache.invalidate("https://b.example.com")
        assert cache.stats() == {"total": 2, "valid": 0, "expired": 1, "invalid": 1}

        assert cache.cleanup_expired() == 1
        assert cache.stats()["total"] == 1


# ---------------------------------------------------------------------------
# Cache-through resolution
# ---------------------------------------------------------------------------


class TestCategoryResolver:
    def test_distinct_urls_trims_and_keeps_first_seen_order(self) -> None:
        assert distinct_urls([" a.com", "b.com", "a.com ", "", "  ", "c.com", "b.com"]) == [
            "a.com",
            "b.com",
            "c.com",
        ]

    def test_resolves_every_url_once(self) -> None:
        extractor = FakeExtractor()
        resolver = CategoryResolver(extractor=extractor, chunk_size=2)  # type: ignore[arg-type]

        resolved = resolver.resolve(["a.com", "b.com", "a.com", "c.com", "d.com", "e.com"])

        assert sorted(extractor.calls) == ["a.com", "b.com", "c.com", "d.com", "e.com"]
        assert set(resolved) == {"a.com", "b.com", "c.com", "d.com", "e.com"}
        assert resolved["c.com"] == ["shoes", "bags"]

    def test_extractor_exception_resolves_to_empty(self) -> None:
        class ExplodingExtractor(FakeExtractor):
            def extract_with_source(self, url: str) -> ExtractionResult:
                if url == "bad.com":
                    raise RuntimeError("boom")
                return super().extract_with_source(url)

        resolver = CategoryResolver(extractor=ExplodingExtractor(), chunk_size=5)  # type: ignore[arg-type]
        resolved = resolver.resolve(["good.com", "bad.com"])
        assert resolved == {"good.com": ["shoes", "bags"], "bad.com": []}

    def test_cache_hit_skips_extraction(self, cache: SQLAlchemyCategoryCache) -> None:
        cache.store("a.com", ["toys"], CategorySource.LINKS)
        extractor = FakeExtractor()
        resolver = CategoryResolver(extractor=extractor, cache=cache)  # type: ignore[arg-type]

        assert resolver.resolve(["a.com"]) == {"a.com": ["toys"]}
        assert extractor.calls == []

    def test_miss_is_scraped_and_stored(self, cache: SQLAlchemyCategoryCache) -> None:
        extractor = FakeExtractor()
        resolver = CategoryResolver(extractor=extractor, cache=cache)  # type: ignore[arg-type]

        resolver.resolve(["a.com"])
        resolver.resolve(["a.com"])

        assert extractor.calls == ["a.com"]
        assert cache.lookup("a.com") == ["shoes", "bags"]

    def test_forced_expiry_triggers_fresh_scrape(
        self,
        cache: SQLAlchemyCategoryCache,
        session_factory: Any,
        clock: Any,
    ) -> None:
        cache.store("a.com", ["old"], CategorySource.LINKS)
        with session_factory() as db:
            db.execute(
                update(ScrapedCategory)
                .where(ScrapedCategory.url_hash == build_url_hash("a.com"))
                .values(expires_at=clock.now - timedelta(minutes=1))
            )
            db.commit()

        extractor = FakeExtractor()
        resolver = CategoryResolver(extractor=extractor, cache=cache)  # type: ignore[arg-type]

        assert resolver.resolve(["a.com"]) == {"a.com": ["shoes", "bags"]}
        assert extractor.calls == ["a.com"]
        record = _record(session_factory, "a.com")
        assert record is not None
        assert as_utc(record.expires_at) == clock.now + timedelta(seconds=3600)
        assert record.categories == ["shoes", "bags"]

    def test_failed_scrape_is_not_cached(self, cache: SQLAlchemyCategoryCache) -> None:
        extractor = FakeExtractor(
            {
                "down.com": ExtractionResult(
                    url="http://down.com",
                    categories=(),
                    source=CategorySource.FALLBACK,
                    error="ConnectionError: refused",
                )
            }
        )
        resolver = CategoryResolver(extractor=extractor, cache=cache)  # type: ignore[arg-type]

        assert resolver.resolve(["down.com"]) == {"down.com": []}
        assert cache.lookup("down.com") is None

    def test_empty_successful_scrape_is_cached(self, cache: SQLAlchemyCategoryCache) -> None:
        extractor = FakeExtractor(
            {"bare.com": ExtractionResult(url="http://bare.com", categories=(), source=CategorySource.FALLBACK)}
        )
        resolver = CategoryResolver(extractor=extractor, cache=cache)  # type: ignore[arg-type]

        resolver.resolve(["bare.com"])
        assert cache.lookup("bare.com") == []
