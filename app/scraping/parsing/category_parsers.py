"""
BeautifulSoup-based category extraction tiers.

Each tier is a pure function ``soup -> list[str]`` returning raw label text in
document order. Tiers run independently over the same parsed document and
their outputs are unioned by ``build_category_set``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from bs4 import BeautifulSoup, Tag

from db.models.scraped_category import CategorySource

STRUCTURED_DATA_TYPES = frozenset(
    {"Product", "ProductGroup", "Collection", "WebPage", "Breadcrumb", "BreadcrumbList"}
)
NAVIGATION_CONTAINERS = 'nav, [role="navigation"], .nav, .navigation, .menu'
BREADCRUMB_CONTAINERS = '.breadcrumb, .breadcrumbs, [class*="breadcrumb"]'
FACET_CONTAINERS = '[class*="filter"], [class*="facet"], [class*="category"]'
CATEGORY_ELEMENTS = ".product-category, .category-link, [data-category]"

EXCLUDED_LINK_TEXT = re.compile(
    r"home|about|contact|privacy|terms|shipping|login|signup|search|cart|wishlist",
    flags=re.IGNORECASE,
)
CATEGORY_PATH = re.compile(r"/category|/collection|/shop|/products|/store|/dept", flags=re.IGNORECASE)
VERTICAL_KEYWORDS = re.compile(
    r"electronics|clothing|fashion|books|grocery|beauty|home|garden|auto|moto|sport",
    flags=re.IGNORECASE,
)
_SPECIAL_CHARS = re.compile(r"[^\w\s-]")
_WHITESPACE = re.compile(r"\s+")
_NUMERIC = re.compile(r"^\d+$")

MIN_CATEGORY_LENGTH = 3
MAX_CATEGORY_LENGTH = 30
MAX_CATEGORIES = 20


def clean_category_name(value: str | None) -> str:
    """
    Lowercase, trim, replace special characters with spaces, collapse whitespace.
    """

    if not value:
        return ""
    cleaned = _SPECIAL_CHARS.sub(" ", value.strip().lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def is_acceptable_category(label: str) -> bool:
    if not MIN_CATEGORY_LENGTH <= len(label) <= MAX_CATEGORY_LENGTH:
        return False
    if _NUMERIC.match(label):
        return False
    return any(char.isalpha() for char in label)


def is_navigation_href(href: str) -> bool:
    return (
        "#" not in href
        and "javascript:" not in href
        and not href.startswith("mailto:")
        and not href.startswith("tel:")
    )


def is_excluded_link_text(text: str) -> bool:
    return bool(EXCLUDED_LINK_TEXT.search(text)) or len(text) < 3 or len(text) > 50


def should_extract_from_link(text: str, href: str) -> bool:
    if not text or not href:
        return False
    if is_excluded_link_text(text):
        return False
    return bool(CATEGORY_PATH.search(href) or VERTICAL_KEYWORDS.search(href) or len(text) >= 3)


def _node_text(node: Tag) -> str:
    return _WHITESPACE.sub(" ", node.get_text(" ", strip=True)).strip().lower()


# ---------------------------------------------------------------------------
# Tier 1: JSON-LD structured data
# ---------------------------------------------------------------------------


def extract_structured_data(soup: BeautifulSoup) -> list[str]:
    labels: list[str] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string if script.string is not None else script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            continue

        for item in _iter_structured_items(payload):
            labels.extend(_labels_from_structured_item(item))
    return labels


def _iter_structured_items(payload: Any) -> Iterable[dict[str, Any]]:
    if isinstance(payload, list):
        for entry in payload:
            yield from _iter_structured_items(entry)
    elif isinstance(payload, dict):
        yield payload
        graph = payload.get("@graph")
        if isinstance(graph, list):
            for entry in graph:
                yield from _iter_structured_items(entry)


def _item_types(item: dict[str, Any]) -> set[str]:
    raw_type = item.get("@type")
    if isinstance(raw_type, str):
        return {raw_type}
    if isinstance(raw_type, list):
        return {entry for entry in raw_type if isinstance(entry, str)}
    return set()


def _labels_from_structured_item(item: dict[str, Any]) -> list[str]:
    if not _item_types(item) & STRUCTURED_DATA_TYPES:
        return []

    labels: list[str] = []
    category = item.get("category") or item.get("genre")
    labels.extend(_structured_values(category))

    breadcrumb = item.get("breadcrumb")
    if isinstance(breadcrumb, dict):
        labels.extend(_breadcrumb_names(breadcrumb.get("itemListElement")))
    if "BreadcrumbList" in _item_types(item):
        labels.extend(_breadcrumb_names(item.get("itemListElement")))
    return labels


def _structured_values(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, dict) and isinstance(value.get("name"), str):
        return [value["name"]]
    if isinstance(value, list):
        values: list[str] = []
        for entry in value:
            values.extend(_structured_values(entry))
        return values
    return []


def _breadcrumb_names(elements: Any) -> list[str]:
    if not isinstance(elements, list):
        return []
    names: list[str] = []
    for element in elements:
        if not isinstance(element, dict):
            continue
        target = element.get("item")
        if isinstance(target, dict) and isinstance(target.get("name"), str):
            names.append(target["name"])
        elif isinstance(element.get("name"), str):
            names.append(element["name"])
    return names


# ---------------------------------------------------------------------------
# Tier 2: navigation menus and breadcrumbs
# ---------------------------------------------------------------------------


def extract_navigation(soup: BeautifulSoup) -> list[str]:
    labels: list[str] = []
    for container in soup.select(NAVIGATION_CONTAINERS):
        for anchor in container.find_all("a"):
            text = _node_text(anchor)
            href = str(anchor.get("href") or "")
            if not is_navigation_href(href) or is_excluded_link_text(text):
                continue
            labels.append(text)

    for container in soup.select(BREADCRUMB_CONTAINERS):
        for node in container.find_all(["a", "span"]):
            text = _node_text(node)
            if 3 <= len(text) <= 30:
                labels.append(text)
    return labels


# ---------------------------------------------------------------------------
# Tier 3: product facets and category-tagged elements
# ---------------------------------------------------------------------------


def extract_product_facets(soup: BeautifulSoup) -> list[str]:
    labels: list[str] = []
    for container in soup.select(FACET_CONTAINERS):
        for node in container.find_all(["a", "label"]):
            text = _node_text(node)
            if 3 <= len(text) <= 25:
                labels.append(text)

    for node in soup.select(CATEGORY_ELEMENTS):
        text = _node_text(node) or str(node.get("data-category") or "") or str(node.get("title") or "")
        if len(text.strip()) >= 3:
            labels.append(text)
    return labels


# ---------------------------------------------------------------------------
# Tier 4: generic category-looking links
# ---------------------------------------------------------------------------


def extract_generic_links(soup: BeautifulSoup) -> list[str]:
    labels: list[str] = []
    for anchor in soup.find_all("a", href=True):
        text = _node_text(anchor)
        href = str(anchor.get("href") or "")
        if should_extract_from_link(text, href):
            labels.append(text)
    return labels


ExtractionTier = Callable[[BeautifulSoup], list[str]]

EXTRACTION_TIERS: tuple[tuple[str, ExtractionTier], ...] = (
    (CategorySource.STRUCTURED_DATA, extract_structured_data),
    (CategorySource.NAVIGATION, extract_navigation),
    (CategorySource.PRODUCTS, extract_product_facets),
    (CategorySource.LINKS, extract_generic_links),
)


@dataclass(frozen=True)
class CategorySet:
    categories: tuple[str, ...]
    source: str
    tier_counts: dict[str, int]


def build_category_set(
    tier_outputs: Sequence[tuple[str, Sequence[str]]],
    *,
    max_categories: int = MAX_CATEGORIES,
) -> CategorySet:
    """
    Clean, union and cap tier outputs in discovery order.

    ``source`` is the tier that contributed most of the surviving labels;
    ties go to the earlier tier.
    """

    first_tier: dict[str, str] = {}
    for tier_name, raw_labels in tier_outputs:
        for raw_label in raw_labels:
            label = clean_category_name(raw_label)
            if label and label not in first_tier:
                first_tier[label] = tier_name

    accepted = [label for label in first_tier if is_acceptable_category(label)]
    accepted = accepted[: max(0, max_categories)]

    tier_counts: dict[str, int] = {tier_name: 0 for tier_name, _ in tier_outputs}
    for label in accepted:
        tier_counts[first_tier[label]] += 1

    source = CategorySource.FALLBACK
    best = 0
    for tier_name, _ in tier_outputs:
        if tier_counts[tier_name] > best:
            source = tier_name
            best = tier_counts[tier_name]
    return CategorySet(categories=tuple(accepted), source=source, tier_counts=tier_counts)


def extract_categories_from_html(html: str, *, max_categories: int = MAX_CATEGORIES) -> CategorySet:
    """
    Run every tier over one document and build its category set.
    """

    soup = BeautifulSoup(html, "html.parser")
    outputs = [(tier_name, tier(soup)) for tier_name, tier in EXTRACTION_TIERS]
    return build_category_set(outputs, max_categories=max_categories)
