"""
Storage layer interfaces for cached URL category sets.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class CategoryCache(ABC):
    """
    URL -> category set cache with time-based expiry.
    """

    @abstractmethod
    def lookup(self, url: str) -> list[str] | None:
        """
        Return the cached categories for a live record, else None.
        """

    @abstractmethod
    def store(self, url: str, categories: Sequence[str], source: str) -> None:
        """
        Upsert the category set for the URL with a fresh expiry.
        """

    def cleanup_expired(self) -> int:
        """
        Delete expired records and return how many were removed.
        """

        return 0

    def stats(self) -> dict[str, int]:
        return {"total": 0, "valid": 0, "expired": 0, "invalid": 0}
