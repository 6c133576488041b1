"""
Repository-layer exceptions for job and upload flows.
"""

from __future__ import annotations


class MatchingRepositoryError(Exception):
    """Base exception for matching repository failures."""


class JobNotFoundError(MatchingRepositoryError):
    """Raised when a referenced matching job does not exist."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Matching job not found: {job_id}")
        self.job_id = job_id


class FileStorageError(MatchingRepositoryError):
    """Raised when storing or deleting uploaded files fails."""
