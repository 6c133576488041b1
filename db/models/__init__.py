"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.matching_job import MatchingJob, MatchingJobStatus
from db.models.processed_result import ProcessedResult
from db.models.scraped_category import CategorySource, ScrapedCategory

__all__ = [
    "CategorySource",
    "MatchingJob",
    "MatchingJobStatus",
    "ProcessedResult",
    "ScrapedCategory",
]
