from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI

from app.schemas.matching_jobs import HealthResponse


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Database: the URL comes from DATABASE_URL, else CLOUD_DATABASE_URL when
    ENVIRONMENT is cloud-like, else LOCAL_DATABASE_URL (see db/config.py).
    Any one of them is enough here; the PostgreSQL-only rule is enforced when
    the engine is created during the lifespan connectivity check.

    E-mail: SMTP_USER and SMTP_PASSWORD are optional but must come together.

    Raises RuntimeError listing every problem so the operator can fix all of
    them in one restart cycle.
    """

    from db.config import resolve_database_target

    errors: list[str] = []

    try:
        resolve_database_target()
    except RuntimeError as exc:
        errors.append(str(exc))

    smtp_user = os.getenv("SMTP_USER", "").strip()
    smtp_password = os.getenv("SMTP_PASSWORD", "").strip()
    if bool(smtp_user) != bool(smtp_password):
        errors.append("SMTP_USER and SMTP_PASSWORD must be set together to enable email notifications.")

    if errors:
        raise RuntimeError(
            "Startup validation failed, missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.

    Does NOT auto-migrate: run ``alembic upgrade head`` first.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


def _ensure_directories() -> None:
    from app.config import get_batch_settings

    settings = get_batch_settings()
    for directory in (settings.uploads_dir, settings.results_dir, settings.logs_dir):
        Path(directory).mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB connectivity and schema, ensure artifact dirs, run the scheduler."""
    from db.config import resolve_database_target

    target = resolve_database_target()
    _check_db()
    logging.getLogger(__name__).info(
        "Database connectivity confirmed source=%s url=%s", target.source, target.redacted()
    )
    _check_schema()
    logging.getLogger(__name__).info("Database schema validated")
    _ensure_directories()

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler()
    scheduler.start()
    logging.getLogger(__name__).info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        logging.getLogger(__name__).info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Category Matching API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import category_cache_router, matching_jobs_router

    application.include_router(matching_jobs_router)
    application.include_router(category_cache_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc))

    return application


app = create_app()
