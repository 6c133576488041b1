"""
Category cache inspection endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_category_cache
from app.schemas.matching_jobs import CacheStatsResponse
from app.scraping.storage.sqlalchemy_cache import SQLAlchemyCategoryCache

router = APIRouter(prefix="/cache", tags=["category-cache"])


@router.get("/stats", response_model=CacheStatsResponse)
def get_cache_stats(cache: SQLAlchemyCategoryCache = Depends(get_category_cache)) -> CacheStatsResponse:
    return CacheStatsResponse(**cache.stats())
