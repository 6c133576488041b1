"""
Category cache exports.
"""

from app.scraping.storage.base import CategoryCache
from app.scraping.storage.sqlalchemy_cache import SQLAlchemyCategoryCache

__all__ = ["CategoryCache", "SQLAlchemyCategoryCache"]
