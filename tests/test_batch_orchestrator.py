"""
tests/test_batch_orchestrator.py

Row processor and batch orchestrator against a fake resolver.

Coverage
--------
- SKIPPED rows for blank sites, FAIL for unresolved sites
- output rows keep original order and pass-through fields
- each distinct URL is resolved once per job, one call per sub-batch
- row-level exceptions become FAIL rows with an error-log line
- success / error log contents and idempotent rerun
- progress reported after every sub-batch
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from app.config import MatchingSettings
from app.domain.category_matching import MatchStatus, RowOutcome
from app.matching.engine import SimilarityEngine
from app.services.batch_orchestrator import BatchOrchestrator, build_output_row
from app.services.job_logs import JobLogWriter
from app.services.row_processor import RowProcessor, row_sites

LABELS = ["laptops", "cameras", "headphones"]
CATEGORIES = {"a.com": LABELS, "b.com": LABELS, "down.com": []}

ROWS: list[dict[str, Any]] = [
    {"client_site": "a.com", "competitor_site": "b.com", "notes": "first"},
    {"client_site": "a.com", "competitor_site": "", "notes": "second"},
    {"client_site": "a.com", "competitor_site": "down.com", "notes": "third"},
    {"client_site": "boom.com", "competitor_site": "b.com", "notes": "fourth"},
    {"client_site": " b.com ", "competitor_site": "a.com", "notes": "fifth"},
    {"client_site": "a.com", "competitor_site": "b.com", "notes": "sixth"},
    {"client_site": "e.com", "competitor_site": "a.com", "notes": "seventh"},
]


class FakeResolver:
    def __init__(self, categories: Mapping[str, Sequence[str]], fail: bool = False) -> None:
        self.categories = categories
        self.fail = fail
        self.calls: list[list[str]] = []

    def resolve(self, urls: Sequence[str]) -> dict[str, list[str]]:
        self.calls.append(list(urls))
        if self.fail:
            raise RuntimeError("resolver unavailable")
        return {url: list(self.categories.get(url, [])) for url in urls}


class ExplodingRowProcessor(RowProcessor):
    def process(self, *, row_index: int, client_site: str, competitor_site: str, categories_by_url: Any) -> RowOutcome:
        if client_site == "boom.com":
            raise ValueError("unexpected markup")
        return super().process(
            row_index=row_index,
            client_site=client_site,
            competitor_site=competitor_site,
            categories_by_url=categories_by_url,
        )


@pytest.fixture()
def row_processor() -> RowProcessor:
    return ExplodingRowProcessor(engine=SimilarityEngine(MatchingSettings()))


def _orchestrator(resolver: FakeResolver, row_processor: RowProcessor, logs_dir: Path) -> BatchOrchestrator:
    return BatchOrchestrator(
        resolver=resolver,  # type: ignore[arg-type]
        row_processor=row_processor,
        logs_dir=logs_dir,
        row_batch_size=5,
    )


# ---------------------------------------------------------------------------
# Row processor
# ---------------------------------------------------------------------------


class TestRowProcessor:
    def test_row_sites_accepts_column_aliases(self) -> None:
        assert row_sites({"website": " a.com ", "competitors_site": "b.com"}) == ("a.com", "b.com")
        assert row_sites({"client": "a.com"}) == ("a.com", "")

    def test_blank_competitor_is_skipped(self) -> None:
        processor = RowProcessor(engine=SimilarityEngine())
        outcome = processor.process(row_index=1, client_site="a.com", competitor_site="  ", categories_by_url=CATEGORIES)
        assert outcome.status == MatchStatus.SKIPPED
        assert outcome.match_count == 0
        assert outcome.error is None

    def test_identical_sets_pass_with_details(self) -> None:
        processor = RowProcessor(engine=SimilarityEngine())
        outcome = processor.process(row_index=1, client_site="a.com", competitor_site="b.com", categories_by_url=CATEGORIES)
        assert outcome.status == MatchStatus.PASS
        assert outcome.match_count == 3
        assert outcome.match_details["total_matches"] == 3
        assert outcome.match_details["high_confidence_matches"] == 3
        assert outcome.match_details["average_confidence"] == "100%"
        assert outcome.client_categories == tuple(LABELS)

    def test_unresolved_site_fails_without_error(self) -> None:
        processor = RowProcessor(engine=SimilarityEngine())
        outcome = processor.process(row_index=1, client_site="a.com", competitor_site="x.com", categories_by_url=CATEGORIES)
        assert outcome.status == MatchStatus.FAIL
        assert outcome.confidence == 0.0
        assert outcome.match_details["reason"] == "no matches"
        assert outcome.error is None


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class TestBatchOrchestrator:
    def test_statuses_in_original_order(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        result = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(job_id="job-1", rows=ROWS)

        assert [outcome.row_index for outcome in result.outcomes] == [1, 2, 3, 4, 5, 6, 7]
        assert [outcome.status for outcome in result.outcomes] == [
            MatchStatus.PASS,
            MatchStatus.SKIPPED,
            MatchStatus.FAIL,
            MatchStatus.FAIL,
            MatchStatus.PASS,
            MatchStatus.PASS,
            MatchStatus.FAIL,
        ]
        assert result.status_counts() == {"PASS": 3, "FAIL": 3, "MARGINAL": 0, "SKIPPED": 1}

    def test_output_rows_keep_pass_through_fields(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        result = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(job_id="job-1", rows=ROWS)

        assert [row["notes"] for row in result.output_rows] == [row["notes"] for row in ROWS]
        first = result.output_rows[0]
        assert first["status"] == "PASS"
        assert first["confidence"] == first["similarity_score"] == 1.0
        assert first["match_count"] == 3
        assert first["error"] == ""
        assert json.loads(first["matching_details"])["total_matches"] == 3
        assert "ValueError" in result.output_rows[3]["error"]

    def test_each_url_resolved_once_per_job(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        resolver = FakeResolver(CATEGORIES)
        _orchestrator(resolver, row_processor, tmp_path).run(job_id="job-1", rows=ROWS)

        assert resolver.calls == [["a.com", "b.com", "down.com", "boom.com"], ["e.com"]]

    def test_row_exception_becomes_fail_row(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        result = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(job_id="job-1", rows=ROWS)

        failed = result.outcomes[3]
        assert failed.status == MatchStatus.FAIL
        assert failed.client_site == "boom.com"
        assert failed.error == "ValueError: unexpected markup"
        assert result.outcomes[4].status == MatchStatus.PASS

    def test_resolver_failure_degrades_rows_to_fail(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        rows = [ROWS[0], ROWS[1]]
        result = _orchestrator(FakeResolver(CATEGORIES, fail=True), row_processor, tmp_path).run(
            job_id="job-2",
            rows=rows,
        )
        assert [outcome.status for outcome in result.outcomes] == [MatchStatus.FAIL, MatchStatus.SKIPPED]

    def test_logs(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        result = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(job_id="job-1", rows=ROWS)

        success_lines = Path(result.success_log_path).read_text(encoding="utf-8").splitlines()
        error_lines = Path(result.error_log_path).read_text(encoding="utf-8").splitlines()

        assert Path(result.success_log_path).name == "job-1_success.log"
        assert Path(result.error_log_path).name == "job-1_error.log"
        assert len(success_lines) == 5
        assert success_lines[0] == (
            "Job job-1 - Row 1 processed: Client: a.com, Competitor: b.com, "
            "Status: PASS, Confidence: 100.0%, Matches: 3"
        )
        assert len(error_lines) == 2
        assert error_lines[0].startswith("Job job-1 - Skipping row 2")
        assert error_lines[1].startswith("Job job-1 - Error processing row 4")
        assert not any("Row 2 " in line for line in success_lines)

    def test_rerun_overwrites_logs(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        orchestrator = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path)
        first = orchestrator.run(job_id="job-1", rows=ROWS)
        first_success = Path(first.success_log_path).read_text(encoding="utf-8")
        second = orchestrator.run(job_id="job-1", rows=ROWS)

        assert Path(second.success_log_path).read_text(encoding="utf-8") == first_success
        assert len(Path(second.error_log_path).read_text(encoding="utf-8").splitlines()) == 2

    def test_progress_after_each_sub_batch(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        progress: list[tuple[int, int]] = []
        _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(
            job_id="job-1",
            rows=ROWS,
            on_progress=lambda processed, total: progress.append((processed, total)),
        )
        assert progress == [(5, 7), (7, 7)]

    def test_failing_progress_callback_does_not_abort(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        def broken(processed: int, total: int) -> None:
            raise RuntimeError("status store down")

        result = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(
            job_id="job-1",
            rows=ROWS,
            on_progress=broken,
        )
        assert len(result.outcomes) == len(ROWS)

    def test_empty_job(self, row_processor: RowProcessor, tmp_path: Path) -> None:
        resolver = FakeResolver(CATEGORIES)
        result = _orchestrator(resolver, row_processor, tmp_path).run(job_id="job-3", rows=[])
        assert result.outcomes == []
        assert result.output_rows == []
        assert resolver.calls == []
        assert Path(result.success_log_path).read_text(encoding="utf-8") == ""


def test_build_output_row_does_not_mutate_input() -> None:
    row = {"client_site": "a.com", "competitor_site": "b.com"}
    outcome = RowOutcome(row_index=1, client_site="a.com", competitor_site="b.com", status=MatchStatus.FAIL)
    merged = build_output_row(row, outcome)
    assert "status" not in row
    assert merged["status"] == "FAIL"
    assert merged["matching_details"] == "{}"


def test_log_write_failure_keeps_batch_running(
    row_processor: RowProcessor,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    original_record = JobLogWriter.record

    def flaky_record(self: JobLogWriter, outcome: RowOutcome) -> None:
        if outcome.row_index == 1:
            raise OSError("No space left on device")
        original_record(self, outcome)

    monkeypatch.setattr(JobLogWriter, "record", flaky_record)

    result = _orchestrator(FakeResolver(CATEGORIES), row_processor, tmp_path).run(job_id="job-1", rows=ROWS)

    assert [outcome.row_index for outcome in result.outcomes] == [1, 2, 3, 4, 5, 6, 7]
    assert result.outcomes[0].status == MatchStatus.PASS
    success_lines = Path(result.success_log_path).read_text(encoding="utf-8").splitlines()
    assert len(success_lines) == 4
    assert not any("Row 1 " in line for line in success_lines)
