"""
alembic/env.py

Migration environment for the category-match schema: scraped_categories,
matching_jobs and processed_results.

URL lookup order:
  1) ``alembic -x db_url=...``
  2) ALEMBIC_DATABASE_URL
  3) sqlalchemy.url from alembic.ini
  4) the service's own resolution (db/config.py)
"""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.base import Base
from db.config import DatabaseTarget, load_env_files, normalize_postgres_url, resolve_database_target
from db.models import MatchingJob, ProcessedResult, ScrapedCategory

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata
MANAGED_TABLES = frozenset(
    model.__tablename__ for model in (MatchingJob, ProcessedResult, ScrapedCategory)
)


def _migration_target() -> DatabaseTarget:
    load_env_files()

    overrides = (
        ("-x db_url", context.get_x_argument(as_dictionary=True).get("db_url", "")),
        ("ALEMBIC_DATABASE_URL", os.getenv("ALEMBIC_DATABASE_URL", "")),
        ("alembic.ini", config.get_main_option("sqlalchemy.url") or ""),
    )
    for source, raw_url in overrides:
        if raw_url.strip():
            target = DatabaseTarget(normalize_postgres_url(raw_url), source)
            break
    else:
        target = resolve_database_target()

    if not target.is_postgres:
        raise RuntimeError(
            f"Migrations target PostgreSQL only; {target.source} points at {target.redacted()}."
        )
    logger.info("Migrating %s (from %s)", target.redacted(), target.source)
    return target


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    # Autogenerate must not propose drops for tables this service does not own.
    if type_ == "table" and reflected and compare_to is None:
        return name in MANAGED_TABLES
    return True


def _configure_kwargs() -> dict:
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "compare_server_default": True,
        "include_object": _include_object,
    }


def run_migrations_offline() -> None:
    context.configure(
        url=_migration_target().url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_kwargs(),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    configuration = config.get_section(config.config_ini_section, {})
    configuration["sqlalchemy.url"] = _migration_target().url

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs())

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
