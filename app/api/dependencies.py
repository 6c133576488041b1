"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

from app.scraping.storage.sqlalchemy_cache import SQLAlchemyCategoryCache
from app.services.spreadsheet_codec import SUPPORTED_EXTENSIONS

SPREADSHEET_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is an .xlsx, .xls or .csv spreadsheet.
    """

    filename = (file.filename or "").strip().lower()
    if not filename.endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only Excel (.xlsx, .xls) and CSV files are allowed.",
        )

    content_type = (file.content_type or "").strip().lower()
    if content_type and content_type not in SPREADSHEET_CONTENT_TYPES and content_type != "application/octet-stream":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported content type: {content_type}",
        )

    return file


def get_category_cache() -> SQLAlchemyCategoryCache:
    from app.config import get_cache_settings
    from db.session import get_session_factory

    return SQLAlchemyCategoryCache(
        session_factory=get_session_factory(),
        ttl_seconds=get_cache_settings().ttl_seconds,
    )
