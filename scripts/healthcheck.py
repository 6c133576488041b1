"""
scripts/healthcheck.py

Container probe for the category matching API.

Healthy means ``GET /health`` answers 200 with ``{"status": "OK", ...}``.
Exit code 0 when healthy, 1 otherwise. ``HEALTHCHECK_URL`` overrides the
default ``http://127.0.0.1:$PORT/health``.
"""

from __future__ import annotations

import json
import os
from urllib.error import URLError
from urllib.request import urlopen

DEFAULT_PORT = "8080"


def health_url() -> str:
    override = os.getenv("HEALTHCHECK_URL", "").strip()
    if override:
        return override
    return f"http://127.0.0.1:{os.getenv('PORT', DEFAULT_PORT)}/health"


def is_healthy(status_code: int, body: bytes) -> bool:
    if status_code != 200:
        return False
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return False
    return isinstance(payload, dict) and payload.get("status") == "OK"


def main() -> int:
    try:
        with urlopen(health_url(), timeout=2) as response:
            return 0 if is_healthy(response.status, response.read()) else 1
    except (URLError, TimeoutError, ValueError):
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
