"""
app/api/routers package marker.
"""

from app.api.routers.category_cache import router as category_cache_router
from app.api.routers.matching_jobs import router as matching_jobs_router

__all__ = [
    "category_cache_router",
    "matching_jobs_router",
]
