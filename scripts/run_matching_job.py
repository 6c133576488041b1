"""
Run the category matching pipeline on a local spreadsheet from CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import uuid
from pathlib import Path

from app.config import get_batch_settings
from app.services.job_status_service import LoggingJobStatusSink
from app.services.matching_job_service import build_batch_orchestrator
from app.services.spreadsheet_codec import parse_rows, result_path_for, write_rows


def main() -> int:
    parser = argparse.ArgumentParser(description="Classify client/competitor rows of a spreadsheet.")
    parser.add_argument("input", help="Path to an .xlsx, .xls or .csv file.")
    parser.add_argument(
        "--output",
        dest="output",
        default=None,
        help="Optional output path. Defaults to <RESULTS_DIR>/<job_id>_processed.<ext>.",
    )
    parser.add_argument("--job-id", dest="job_id", default=None, help="Optional job id for log file names.")
    parser.add_argument(
        "--no-cache",
        dest="no_cache",
        action="store_true",
        help="Scrape every site without reading or writing the category cache.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    job_id = args.job_id or str(uuid.uuid4())
    settings = get_batch_settings()

    session_factory = None
    if not args.no_cache:
        from db.session import get_session_factory

        session_factory = get_session_factory()

    sink = LoggingJobStatusSink()
    sink.report(job_id, "processing")
    try:
        rows = parse_rows(args.input)
        orchestrator = build_batch_orchestrator(session_factory=session_factory, use_cache=not args.no_cache)
        result = orchestrator.run(
            job_id=job_id,
            rows=rows,
            on_progress=lambda processed, total: sink.progress(job_id, processed, total),
        )
        output_path = Path(args.output) if args.output else result_path_for(
            settings.results_dir, job_id, Path(args.input).name
        )
        write_rows(output_path, result.output_rows)
    except Exception as exc:
        sink.report(job_id, "failed", {"error": f"{type(exc).__name__}: {exc}"})
        print(json.dumps({"job_id": job_id, "status": "failed", "error": str(exc)}, indent=2))
        return 1

    payload = {
        "job_id": job_id,
        "status": "completed",
        "result_path": str(output_path),
        "success_log_path": result.success_log_path,
        "error_log_path": result.error_log_path,
        "totals": {"total_rows": len(rows), **{k.lower(): v for k, v in result.status_counts().items()}},
    }
    sink.report(job_id, "completed", payload)
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
