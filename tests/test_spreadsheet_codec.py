from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from app.services.spreadsheet_codec import (
    RESULT_SHEET_NAME,
    SpreadsheetReadError,
    UnsupportedSpreadsheetError,
    parse_rows,
    result_path_for,
    write_rows,
)
from app.services.row_processor import row_sites


def test_parse_csv_normalizes_headers_and_blanks(tmp_path: Path) -> None:
    source = tmp_path / "rows.csv"
    source.write_text("Client Site,Competitor,Notes\n a.com ,b.com,x\nc.com,,\n", encoding="utf-8")

    rows = parse_rows(source)

    assert rows == [
        {"client_site": "a.com", "competitor": "b.com", "notes": "x"},
        {"client_site": "c.com", "competitor": "", "notes": ""},
    ]
    assert row_sites(rows[0]) == ("a.com", "b.com")


def test_parse_xlsx_first_sheet(tmp_path: Path) -> None:
    source = tmp_path / "rows.xlsx"
    with pd.ExcelWriter(source, engine="openpyxl") as writer:
        pd.DataFrame([{"client_site": "a.com", "competitors_site": "b.com"}]).to_excel(
            writer, sheet_name="Input", index=False
        )
        pd.DataFrame([{"other": 1}]).to_excel(writer, sheet_name="Ignored", index=False)

    assert parse_rows(source) == [{"client_site": "a.com", "competitors_site": "b.com"}]


def test_unsupported_extension(tmp_path: Path) -> None:
    with pytest.raises(UnsupportedSpreadsheetError):
        parse_rows(tmp_path / "rows.txt")


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SpreadsheetReadError):
        parse_rows(tmp_path / "missing.csv")


def test_corrupt_workbook(tmp_path: Path) -> None:
    source = tmp_path / "rows.xlsx"
    source.write_bytes(b"definitely not a zip archive")
    with pytest.raises(SpreadsheetReadError):
        parse_rows(source)


def test_result_path_keeps_extension(tmp_path: Path) -> None:
    assert result_path_for(tmp_path, "job-1", "job-1_rows.csv") == tmp_path / "job-1_processed.csv"
    assert result_path_for(tmp_path, "job-1", "rows.xls") == tmp_path / "job-1_processed.xlsx"


def test_write_xlsx_uses_results_sheet(tmp_path: Path) -> None:
    target = tmp_path / "out" / "job-1_processed.xlsx"
    write_rows(target, [{"client_site": "a.com", "status": "PASS", "confidence": 0.9}])

    frame = pd.read_excel(target, sheet_name=RESULT_SHEET_NAME, engine="openpyxl")
    assert list(frame.columns) == ["client_site", "status", "confidence"]
    assert frame.iloc[0]["status"] == "PASS"


def test_write_csv_overwrites(tmp_path: Path) -> None:
    target = tmp_path / "job-1_processed.csv"
    write_rows(target, [{"status": "FAIL"}, {"status": "PASS"}])
    write_rows(target, [{"status": "PASS"}])
    assert pd.read_csv(target)["status"].tolist() == ["PASS"]
