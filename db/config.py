"""
db/config.py

Database target resolution for the category cache and job store.

Lookup order:
  1) DATABASE_URL
  2) CLOUD_DATABASE_URL, only when ENVIRONMENT is prod/production/staging/cloud
  3) LOCAL_DATABASE_URL

``postgres://`` and ``postgresql://`` URLs are rewritten to the psycopg
driver. The engine itself only accepts PostgreSQL (see ``DatabaseTarget.is_postgres``).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_FILES: tuple[str, ...] = (".env", ".env.local")
CLOUD_LIKE_ENVIRONMENTS = frozenset({"prod", "production", "staging", "cloud"})


@dataclass(frozen=True)
class DatabaseTarget:
    url: str
    source: str

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith("postgresql")

    def redacted(self) -> str:
        """URL safe for logs: the password is masked."""
        try:
            return make_url(self.url).render_as_string(hide_password=True)
        except ArgumentError:
            return "<unparseable database url>"


def load_env_files(root: Path | None = None) -> None:
    """
    Load KEY=VALUE pairs from ``.env`` then ``.env.local`` under ``root``
    (the project root by default).

    Variables already present in the process environment win.
    """

    base_dir = root or PROJECT_ROOT
    for filename in ENV_FILES:
        env_path = base_dir / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export ") :].strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            if key and key not in os.environ:
                os.environ[key] = value.strip().strip('"').strip("'")


def normalize_postgres_url(url: str) -> str:
    url = url.strip()
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return "postgresql+psycopg://" + url[len(prefix) :]
    return url


def _env(name: str) -> str:
    return os.getenv(name, "").strip()


def resolve_database_target() -> DatabaseTarget:
    """
    Resolve the database URL and remember which variable supplied it.

    Raises RuntimeError when none of the variables applies.
    """

    load_env_files()

    if _env("DATABASE_URL"):
        return DatabaseTarget(normalize_postgres_url(_env("DATABASE_URL")), "DATABASE_URL")

    environment = (_env("ENVIRONMENT") or "local").lower()
    if environment in CLOUD_LIKE_ENVIRONMENTS and _env("CLOUD_DATABASE_URL"):
        return DatabaseTarget(normalize_postgres_url(_env("CLOUD_DATABASE_URL")), "CLOUD_DATABASE_URL")

    if _env("LOCAL_DATABASE_URL"):
        return DatabaseTarget(normalize_postgres_url(_env("LOCAL_DATABASE_URL")), "LOCAL_DATABASE_URL")

    raise RuntimeError(
        "No database URL configured for the category cache and job store. "
        "Set DATABASE_URL, LOCAL_DATABASE_URL, or CLOUD_DATABASE_URL with a cloud ENVIRONMENT."
    )


def resolve_database_url() -> str:
    return resolve_database_target().url
