"""
app/scheduler/jobs.py

APScheduler-based housekeeping for the category cache and stored results.

Schedule (all times UTC)
--------------------------
  cache_cleanup              every CATEGORY_CACHE_CLEANUP_INTERVAL_MINUTES
  processed_results_cleanup  04:00 every day

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from app.config import get_batch_settings, get_cache_settings
from app.scraping.storage.sqlalchemy_cache import SQLAlchemyCategoryCache
from db.repositories.processed_result_repository import ProcessedResultRepository
from db.session import SessionLocal, get_session_factory

logger = logging.getLogger(__name__)


@contextmanager
def _session_scope() -> Iterator[Session]:
    """Yield a fresh session and ensure it is closed on exit."""
    session: Session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def run_cache_cleanup() -> int:
    """
    Delete expired category cache records. Failures are logged, never raised.
    """
    logger.info("Scheduler: cache_cleanup starting")
    try:
        cache = SQLAlchemyCategoryCache(
            session_factory=get_session_factory(),
            ttl_seconds=get_cache_settings().ttl_seconds,
        )
        deleted = cache.cleanup_expired()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: cache_cleanup failed: %s", exc)
        return 0
    logger.info("Scheduler: cache_cleanup complete deleted=%s", deleted)
    return deleted


def run_processed_results_cleanup() -> int:
    """
    Delete processed row results older than the configured retention.
    Failures are logged, never raised.
    """
    retention_days = get_batch_settings().result_retention_days
    logger.info("Scheduler: processed_results_cleanup starting retention_days=%s", retention_days)

    try:
        with _session_scope() as db:
            try:
                deleted = ProcessedResultRepository(db).delete_older_than(days=retention_days)
                db.commit()
            except Exception:
                db.rollback()
                raise
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: processed_results_cleanup failed: %s", exc)
        return 0

    logger.info("Scheduler: processed_results_cleanup complete deleted=%s", deleted)
    return deleted


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_cache_cleanup,
        trigger="interval",
        minutes=get_cache_settings().cleanup_interval_minutes,
        id="cache_cleanup",
        name="Expired category cache cleanup",
        replace_existing=True,
        misfire_grace_time=600,
    )
    scheduler.add_job(
        run_processed_results_cleanup,
        trigger="cron",
        hour=4,
        minute=0,
        id="processed_results_cleanup",
        name="Processed results retention cleanup",
        replace_existing=True,
        misfire_grace_time=3600,
    )

    return scheduler
