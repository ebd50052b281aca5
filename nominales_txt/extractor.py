"""Header-row search and RawRecord extraction over a sheet's cell matrix."""

from __future__ import annotations

from typing import Any, Optional

from nominales_txt.cells import to_text
from nominales_txt.loader import WorkbookSource, load_workbook

HEADER_SCAN_ROWS = 20
HEADER_IDENTIFIER_FRAGMENTS = ("cuit", "cuil", "ident")
HEADER_QUANTITY_FRAGMENTS = ("nominal", "monto", "cantidad", "vn")

RawRecord = dict[str, Any]


def row_search_text(row: list[Any]) -> str:
    return " ".join(to_text(cell).lower() for cell in row)


def is_header_row(row: list[Any]) -> bool:
    text = row_search_text(row)
    has_identifier = any(fragment in text for fragment in HEADER_IDENTIFIER_FRAGMENTS)
    has_quantity = any(fragment in text for fragment in HEADER_QUANTITY_FRAGMENTS)
    return has_identifier and has_quantity


def find_header_row(matrix: list[list[Any]], scan_rows: int = HEADER_SCAN_ROWS) -> Optional[int]:
    """Return the index of the first row in the scan window naming both an identifier and a quantity."""
    for idx, row in enumerate(matrix[:scan_rows]):
        if is_header_row(row):
            return idx
    return None


def build_records(header: list[Any], body: list[list[Any]]) -> list[RawRecord]:
    labels = [to_text(cell).strip() for cell in header]
    records: list[RawRecord] = []
    for row in body:
        record: RawRecord = {}
        for idx, label in enumerate(labels):
            if not label:
                continue
            record[label] = row[idx] if idx < len(row) else None
        records.append(record)
    return records


def extract_records(matrix: list[list[Any]]) -> tuple[list[RawRecord], Optional[int]]:
    """
    Turn a sheet matrix into RawRecords.

    Returns the records and the detected header index. When no header is
    found in the scan window, row 0 is used unconditionally and the index
    is reported as ``None``.
    """
    if not matrix:
        return [], None
    header_idx = find_header_row(matrix)
    start = 0 if header_idx is None else header_idx
    return build_records(matrix[start], matrix[start + 1:]), header_idx


def read_sheets(source: WorkbookSource) -> dict:
    """
    Load a workbook and extract RawRecords for every sheet.

    Only sheets yielding at least one record are kept in ``sheets``; empty
    or unparsable sheets are left out with a warning. Unreadable input
    propagates :class:`~nominales_txt.loader.WorkbookReadError`.
    """
    loaded = load_workbook(source)
    warnings = list(loaded["warnings"])
    sheets: dict[str, list[RawRecord]] = {}
    header_rows: dict[str, Optional[int]] = {}

    for name, matrix in loaded["sheets"].items():
        records, header_idx = extract_records(matrix)
        if not records:
            warnings.append(f"Sheet '{name}' has no data rows; skipped")
            continue
        if header_idx is None:
            warnings.append(
                f"Sheet '{name}': no header row found in the first {HEADER_SCAN_ROWS} rows; using row 1"
            )
        sheets[name] = records
        header_rows[name] = header_idx

    return {
        "sheets":          sheets,
        "header_rows":     header_rows,
        "sheet_names":     loaded["sheet_names"],
        "detected_format": loaded["detected_format"],
        "warnings":        warnings,
    }
