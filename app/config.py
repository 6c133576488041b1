"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

DEFAULT_STOPLIST: tuple[str, ...] = (
    "shop all",
    "view all",
    "see all",
    "new arrivals",
    "best sellers",
    "gift cards",
    "my account",
    "sign in",
    "log in",
    "customer service",
    "store locator",
    "track order",
    "help",
    "faq",
    "blog",
    "careers",
    "sitemap",
    "returns",
)

DUPLICATE_POLICY_FIRST_SEEN = "first_seen"
DUPLICATE_POLICY_BEST_CONFIDENCE = "best_confidence"
_DUPLICATE_POLICIES = {DUPLICATE_POLICY_FIRST_SEEN, DUPLICATE_POLICY_BEST_CONFIDENCE}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


def _get_list_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """
    Read a comma separated list, lowercased and trimmed.
    """

    raw_value = _get_optional_str_env(name)
    if raw_value is None:
        return default
    items = [item.strip().lower() for item in raw_value.split(",")]
    return tuple(item for item in items if item)


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _resolve_dir(raw_path: str) -> str:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return str(candidate)
    return str((_project_root() / candidate).resolve())


@dataclass(frozen=True)
class ExtractorSettings:
    """
    Fixed HTTP client configuration for category extraction.
    """

    timeout_seconds: float = 10.0
    max_redirects: int = 5
    user_agent: str = DEFAULT_USER_AGENT
    accept: str = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    accept_language: str = "en-US,en;q=0.5"
    accept_encoding: str = "gzip, deflate"
    max_categories: int = 20

    def request_headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
            "Accept-Encoding": self.accept_encoding,
        }


@dataclass(frozen=True)
class CacheSettings:
    """
    Category cache lifetime and housekeeping settings.
    """

    enabled: bool = True
    ttl_seconds: int = 86400
    cleanup_interval_minutes: int = 60


@dataclass(frozen=True)
class MatchThresholds:
    """
    Classification thresholds for one category-set comparison.
    """

    min_matches: int = 3
    min_confidence: float = 0.6
    min_average_similarity: float = 0.55


@dataclass(frozen=True)
class MatchingSettings:
    """
    Similarity engine probe thresholds and label filters.
    """

    thresholds: MatchThresholds = field(default_factory=MatchThresholds)
    fuzzy_max_distance: float = 0.2
    edit_min_similarity: float = 0.8
    edit_max_distance: int = 3
    cosine_min_similarity: float = 0.7
    min_label_length: int = 3
    max_label_length: int = 50
    stoplist: tuple[str, ...] = DEFAULT_STOPLIST
    duplicate_policy: str = DUPLICATE_POLICY_FIRST_SEEN


@dataclass(frozen=True)
class BatchSettings:
    """
    Batch orchestration and job artifact settings.
    """

    row_batch_size: int = 5
    scrape_chunk_size: int = 5
    results_dir: str = "results"
    logs_dir: str = "logs"
    uploads_dir: str = "uploads"
    base_url: str = "http://localhost:8080"
    result_retention_days: int = 30


@dataclass(frozen=True)
class EmailSettings:
    """
    SMTP settings for completion notifications.
    """

    host: str = "smtp.gmail.com"
    port: int = 587
    user: str | None = None
    password: str | None = None
    sender: str | None = None
    use_tls: bool = True

    @property
    def enabled(self) -> bool:
        return bool(self.user and self.password)


@lru_cache(maxsize=1)
def get_extractor_settings() -> ExtractorSettings:
    """
    Return cached category extractor settings from environment variables.
    """

    return ExtractorSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTRACTOR_TIMEOUT_SECONDS", 10.0)),
        max_redirects=max(0, _get_int_env("EXTRACTOR_MAX_REDIRECTS", 5)),
        user_agent=_get_str_env("EXTRACTOR_USER_AGENT", DEFAULT_USER_AGENT),
        max_categories=max(1, _get_int_env("EXTRACTOR_MAX_CATEGORIES", 20)),
    )


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    """
    Return cached category cache settings from environment variables.
    """

    return CacheSettings(
        enabled=_get_bool_env("CATEGORY_CACHE_ENABLED", True),
        ttl_seconds=max(1, _get_int_env("CATEGORY_CACHE_TTL_SECONDS", 86400)),
        cleanup_interval_minutes=max(1, _get_int_env("CATEGORY_CACHE_CLEANUP_INTERVAL_MINUTES", 60)),
    )


@lru_cache(maxsize=1)
def get_matching_settings() -> MatchingSettings:
    """
    Return cached similarity engine settings from environment variables.
    """

    duplicate_policy = _get_str_env("MATCH_DUPLICATE_POLICY", DUPLICATE_POLICY_FIRST_SEEN).lower()
    if duplicate_policy not in _DUPLICATE_POLICIES:
        duplicate_policy = DUPLICATE_POLICY_FIRST_SEEN

    return MatchingSettings(
        thresholds=MatchThresholds(
            min_matches=max(1, _get_int_env("MATCH_MIN_MATCHES", 3)),
            min_confidence=min(1.0, max(0.0, _get_float_env("MATCH_MIN_CONFIDENCE", 0.6))),
            min_average_similarity=min(
                1.0,
                max(0.0, _get_float_env("MATCH_MIN_AVERAGE_SIMILARITY", 0.55)),
            ),
        ),
        fuzzy_max_distance=min(1.0, max(0.0, _get_float_env("MATCH_FUZZY_MAX_DISTANCE", 0.2))),
        edit_min_similarity=min(1.0, max(0.0, _get_float_env("MATCH_EDIT_MIN_SIMILARITY", 0.8))),
        edit_max_distance=max(0, _get_int_env("MATCH_EDIT_MAX_DISTANCE", 3)),
        cosine_min_similarity=min(1.0, max(0.0, _get_float_env("MATCH_COSINE_MIN_SIMILARITY", 0.7))),
        stoplist=_get_list_env("MATCH_STOPLIST", DEFAULT_STOPLIST),
        duplicate_policy=duplicate_policy,
    )


@lru_cache(maxsize=1)
def get_batch_settings() -> BatchSettings:
    """
    Return cached batch orchestration settings from environment variables.
    """

    return BatchSettings(
        row_batch_size=max(1, _get_int_env("BATCH_ROW_SIZE", 5)),
        scrape_chunk_size=max(1, _get_int_env("BATCH_SCRAPE_CHUNK_SIZE", 5)),
        results_dir=_resolve_dir(_get_str_env("RESULTS_DIR", "results")),
        logs_dir=_resolve_dir(_get_str_env("LOGS_DIR", "logs")),
        uploads_dir=_resolve_dir(_get_str_env("UPLOADS_DIR", "uploads")),
        base_url=_get_str_env("BASE_URL", "http://localhost:8080").rstrip("/"),
        result_retention_days=max(1, _get_int_env("PROCESSED_RESULT_RETENTION_DAYS", 30)),
    )


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """
    Return cached SMTP settings from environment variables.
    """

    user = _get_optional_str_env("SMTP_USER")
    return EmailSettings(
        host=_get_str_env("SMTP_HOST", "smtp.gmail.com"),
        port=max(1, _get_int_env("SMTP_PORT", 587)),
        user=user,
        password=_get_optional_str_env("SMTP_PASSWORD"),
        sender=_get_optional_str_env("SMTP_FROM") or user,
        use_tls=_get_bool_env("SMTP_USE_TLS", True),
    )
