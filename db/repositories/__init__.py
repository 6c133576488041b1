"""
Repository layer exports.
"""

from db.repositories.errors import FileStorageError, JobNotFoundError, MatchingRepositoryError
from db.repositories.matching_job_repository import MatchingJobRepository
from db.repositories.processed_result_repository import ProcessedResultRepository
from db.repositories.scraped_category_repository import ScrapedCategoryRepository
from db.repositories.storage import LocalUploadStorage, UploadStorageBackend

__all__ = [
    "FileStorageError",
    "JobNotFoundError",
    "LocalUploadStorage",
    "MatchingJobRepository",
    "MatchingRepositoryError",
    "ProcessedResultRepository",
    "ScrapedCategoryRepository",
    "UploadStorageBackend",
]
