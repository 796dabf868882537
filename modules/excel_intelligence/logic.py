# Sheet Insight
# Copyright (C) 2025  Aleksandr Ladygin
# Licensed under the GNU General Public License v3 or later.
#
# See the LICENSE file in the project root for full license information.

from __future__ import annotations

import csv
import io
from datetime import date, datetime, time
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

CSV_SHEET_NAME = "Sheet1"
WORKBOOK_EXTS = {".xlsx", ".xlsm"}

logger = getLogger(__name__)


def _cell_value(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def _unique_headers(raw: Iterable[Any]) -> List[str]:
    headers: List[str] = []
    seen: Dict[str, int] = {}
    for cell in raw:
        base = "__EMPTY" if cell is None or str(cell).strip() == "" else str(cell).strip()
        count = seen.get(base, 0)
        seen[base] = count + 1
        headers.append(base if count == 0 else f"{base}_{count}")
    return headers


def _rows_from_values(values: Iterable[tuple]) -> List[Dict[str, Any]]:
    it = iter(values)
    try:
        headers = _unique_headers(next(it))
    except StopIteration:
        return []

    rows: List[Dict[str, Any]] = []
    for raw in it:
        row = {
            headers[i]: _cell_value(cell)
            for i, cell in enumerate(raw)
            if i < len(headers) and cell is not None and cell != ""
        }
        if row:
            rows.append(row)
    return rows


def load_workbook_bytes(data: bytes) -> Dict[str, List[Dict[str, Any]]]:
    """Every worksheet as a list of header-keyed rows; empty cells are left out."""
    try:
        import openpyxl  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise ImportError("openpyxl is required to read Excel files") from exc

    wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True, read_only=True)
    try:
        return {ws.title: _rows_from_values(ws.iter_rows(values_only=True)) for ws in wb.worksheets}
    finally:
        wb.close()


def load_csv_text(text: str, sheet_name: str = CSV_SHEET_NAME) -> Dict[str, List[Dict[str, Any]]]:
    reader = csv.DictReader(io.StringIO(text))
    rows: List[Dict[str, Any]] = []
    for record in reader:
        values = {k: v for k, v in record.items() if k is not None}
        if not any((v or "").strip() for v in values.values()):
            continue
        rows.append({k: (v if v is not None else "") for k, v in values.items()})
    return {sheet_name: rows}


def decode_csv_bytes(data: bytes, encoding: Optional[str] = None) -> str:
    codec = encoding or "utf-8-sig"
    try:
        return data.decode(codec)
    except UnicodeDecodeError as exc:
        logger.warning(
            "CSV is not valid %s (byte %d); undecodable bytes replaced with U+FFFD",
            codec,
            exc.start,
        )
        return data.decode(codec, errors="replace")


def load_dataset(filename: str, data: bytes, encoding: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    suffix = Path(filename or "").suffix.lower()
    if suffix in WORKBOOK_EXTS:
        return load_workbook_bytes(data)
    if suffix == ".csv":
        return load_csv_text(decode_csv_bytes(data, encoding))
    raise ValueError(f"Unsupported file type: {suffix or filename!r} (expected .xlsx, .xlsm or .csv)")
