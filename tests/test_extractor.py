from __future__ import annotations

import unittest
from typing import Any

import requests

from app.config import ExtractorSettings
from app.scraping.extractor import CategoryExtractor, normalize_site_url
from db.models.scraped_category import CategorySource

PAGE = """
<html><body>
  <nav><a href="/shoes">Shoes</a><a href="/bags">Bags</a></nav>
</body></html>
"""


class FakeResponse:
    def __init__(self, text: str = "", status_code: int = 200) -> None:
        self.text = text
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


class FakeSession:
    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse(PAGE)
        self.error = error
        self.max_redirects = 30
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


class TestNormalizeSiteUrl(unittest.TestCase):
    def test_prefixes_missing_scheme(self) -> None:
        self.assertEqual(normalize_site_url(" example.com "), "http://example.com")

    def test_keeps_existing_scheme(self) -> None:
        self.assertEqual(normalize_site_url("https://example.com/shop"), "https://example.com/shop")
        self.assertEqual(normalize_site_url("HTTP://example.com"), "HTTP://example.com")


class TestCategoryExtractor(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = ExtractorSettings()

    def test_fetches_with_fixed_headers_and_limits(self) -> None:
        session = FakeSession()
        extractor = CategoryExtractor(settings=self.settings, session=session)  # type: ignore[arg-type]

        categories = extractor.extract("example.com")

        self.assertEqual(categories, ["shoes", "bags"])
        self.assertEqual(session.max_redirects, 5)
        url, kwargs = session.calls[0]
        self.assertEqual(url, "http://example.com")
        self.assertEqual(kwargs["timeout"], 10.0)
        self.assertTrue(kwargs["allow_redirects"])
        self.assertEqual(kwargs["headers"]["User-Agent"], self.settings.user_agent)
        self.assertEqual(kwargs["headers"]["Accept-Language"], "en-US,en;q=0.5")

    def test_reports_dominant_source(self) -> None:
        extractor = CategoryExtractor(settings=self.settings, session=FakeSession())  # type: ignore[arg-type]
        result = extractor.extract_with_source("https://example.com")
        self.assertEqual(result.source, CategorySource.NAVIGATION)
        self.assertIsNone(result.error)

    def test_timeout_degrades_to_empty_set(self) -> None:
        session = FakeSession(error=requests.Timeout("read timed out"))
        extractor = CategoryExtractor(settings=self.settings, session=session)  # type: ignore[arg-type]

        self.assertEqual(extractor.extract("slow.example.com"), [])
        result = extractor.extract_with_source("slow.example.com")
        self.assertEqual(result.categories, ())
        self.assertEqual(result.source, CategorySource.FALLBACK)
        self.assertIn("Timeout", result.error or "")

    def test_http_error_status_degrades_to_empty_set(self) -> None:
        session = FakeSession(response=FakeResponse("<nav><a href='/x'>Toys</a></nav>", status_code=404))
        extractor = CategoryExtractor(settings=self.settings, session=session)  # type: ignore[arg-type]
        self.assertEqual(extractor.extract("example.com"), [])

    def test_too_many_redirects_degrades_to_empty_set(self) -> None:
        session = FakeSession(error=requests.TooManyRedirects("Exceeded 5 redirects."))
        extractor = CategoryExtractor(settings=self.settings, session=session)  # type: ignore[arg-type]
        self.assertEqual(extractor.extract("loop.example.com"), [])

    def test_blank_url_skips_network(self) -> None:
        session = FakeSession()
        extractor = CategoryExtractor(settings=self.settings, session=session)  # type: ignore[arg-type]
        self.assertEqual(extractor.extract("   "), [])
        self.assertEqual(session.calls, [])

    def test_respects_category_cap(self) -> None:
        links = "".join(f'<a href="/c/{index}">Category {chr(ord("a") + index)}</a>' for index in range(25))
        session = FakeSession(response=FakeResponse(f"<nav>{links}</nav>"))
        extractor = CategoryExtractor(
            settings=ExtractorSettings(max_categories=20),
            session=session,  # type: ignore[arg-type]
        )
        self.assertEqual(len(extractor.extract("example.com")), 20)


class TestRepeatedExtraction(unittest.TestCase):
    def test_identical_page_yields_identical_categories(self) -> None:
        session = FakeSession(response=FakeResponse(PAGE))
        extractor = CategoryExtractor(settings=ExtractorSettings(), session=session)  # type: ignore[arg-type]

        first = extractor.extract_with_source("example.com")
        second = extractor.extract_with_source("example.com")

        self.assertEqual(len(session.calls), 2)
        self.assertEqual(set(first.categories), set(second.categories))
        self.assertEqual(first.source, second.source)
