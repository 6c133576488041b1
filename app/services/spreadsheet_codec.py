"""
app/services/spreadsheet_codec.py

Read job input spreadsheets into row mappings and write processed results.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xls", ".csv")
RESULT_SHEET_NAME = "Processed Results"


class SpreadsheetReadError(ValueError):
    """
    Raised when an input spreadsheet cannot be read or parsed.
    """


class UnsupportedSpreadsheetError(SpreadsheetReadError):
    """
    Raised for file types other than .xlsx, .xls and .csv.
    """


def spreadsheet_extension(file_name: str) -> str:
    extension = Path(file_name).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise UnsupportedSpreadsheetError(
            f"Unsupported file type '{extension or file_name}'. "
            f"Expected one of: {', '.join(SUPPORTED_EXTENSIONS)}."
        )
    return extension


def _normalize_column(column: Any) -> str:
    return str(column).strip().lower().replace(" ", "_")


def _cell_value(value: Any) -> Any:
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        return value
    if isinstance(value, str):
        return value.strip()
    return value


def parse_rows(path: str | Path) -> list[dict[str, Any]]:
    """
    Read the first sheet of an .xlsx/.xls file, or a .csv file, into row dicts.

    Column names are lowercased with spaces turned into underscores. Missing
    cells become empty strings.
    """

    file_path = Path(path)
    extension = spreadsheet_extension(file_path.name)
    try:
        if extension == ".csv":
            frame = pd.read_csv(file_path, dtype=object, keep_default_na=True)
        elif extension == ".xlsx":
            frame = pd.read_excel(file_path, sheet_name=0, engine="openpyxl", dtype=object)
        else:
            frame = pd.read_excel(file_path, sheet_name=0, dtype=object)
    except FileNotFoundError as exc:
        raise SpreadsheetReadError(f"Input file not found: {file_path.name}") from exc
    except Exception as exc:
        raise SpreadsheetReadError(f"Unable to read spreadsheet {file_path.name}: {exc}") from exc

    frame.columns = [_normalize_column(column) for column in frame.columns]
    rows = [
        {column: _cell_value(value) for column, value in record.items()}
        for record in frame.to_dict(orient="records")
    ]
    logger.info("Parsed spreadsheet file=%s rows=%s columns=%s", file_path.name, len(rows), len(frame.columns))
    return rows


def result_path_for(results_dir: str | Path, job_id: str, input_file_name: str) -> Path:
    """
    ``<results_dir>/<job_id>_processed.<ext>``, keeping the input's extension.

    Legacy .xls inputs are written back as .xlsx.
    """

    extension = spreadsheet_extension(input_file_name)
    if extension == ".xls":
        extension = ".xlsx"
    return Path(results_dir) / f"{job_id}_processed{extension}"


def write_rows(path: str | Path, rows: Sequence[Mapping[str, Any]]) -> Path:
    """
    Write processed rows, overwriting any earlier artifact at ``path``.
    """

    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame([dict(row) for row in rows])
    if file_path.suffix.lower() == ".csv":
        frame.to_csv(file_path, index=False)
    else:
        with pd.ExcelWriter(file_path, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name=RESULT_SHEET_NAME, index=False)
    logger.info("Wrote processed results file=%s rows=%s", file_path, len(frame))
    return file_path
