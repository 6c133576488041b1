"""
app/scraping/logging_utils.py

Structured event logging for category extraction and job runs.

Every event is one compact JSON line so a job can be followed by grepping
its ``job_id`` or a site ``url``. Long string fields (error messages from
remote servers, raw labels) are clipped to keep single lines bounded.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from typing import Any

MAX_FIELD_CHARS = 500


def start_timer() -> float:
    return time.perf_counter()


def elapsed_ms(started: float) -> int:
    """Whole milliseconds since ``started`` (a ``start_timer()`` value)."""
    return int((time.perf_counter() - started) * 1000)


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_CHARS:
        return value[:MAX_FIELD_CHARS] + "..."
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [_clip(item) for item in value]
    return value


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **{key: _clip(value) for key, value in fields.items()}}
    logger.log(level, json.dumps(payload, default=str, sort_keys=True))
