"""
loader.py: Workbook loader for nominales-txt

Supports: .xlsx (openpyxl) and .xls (xlrd, optional extra)

Public API:
    result = load_workbook(raw_bytes)          # or a path / binary file object
    matrix = result["sheets"]["Hoja1"]

Result dict keys:
    sheets: ordered {sheet name: list of row lists}, untyped cells, starting
        at the first used row and column
    sheet_names: every sheet name in workbook order
    detected_format: "xlsx" or "xls"
    warnings: list of warning strings (sheets that could not be parsed)
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, BinaryIO, Union

from nominales_txt.cells import normalize_scalar

EXCEL_FORMATS = {".xlsx", ".xls"}

ZIP_MAGIC = b"PK\x03\x04"
OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

WorkbookSource = Union[bytes, bytearray, BinaryIO, str, Path]


class WorkbookReadError(ValueError):
    """The input could not be decoded as a spreadsheet."""


def _read_source_bytes(source: WorkbookSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        path = Path(source)
        suffix = path.suffix.lower()
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if suffix not in EXCEL_FORMATS:
            supported = ", ".join(sorted(EXCEL_FORMATS))
            raise ValueError(f"Unsupported format '{suffix or '[missing extension]'}'. Supported: {supported}")
        return path.read_bytes()
    if hasattr(source, "read"):
        payload = source.read()
        if isinstance(payload, str):
            raise WorkbookReadError("Workbook stream must be opened in binary mode")
        return bytes(payload)
    raise TypeError(f"Unsupported workbook source: {type(source).__name__}")


def detect_format(raw: bytes) -> str:
    if raw.startswith(ZIP_MAGIC):
        return "xlsx"
    if raw.startswith(OLE_MAGIC):
        return "xls"
    raise WorkbookReadError("Could not read workbook: not an .xlsx or .xls file")


def _engine_for(detected_format: str) -> str:
    if detected_format == "xls":
        # .xls requires xlrd; give a clear error if missing.
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd; run: pip install xlrd")
        return "xlrd"
    return "openpyxl"


def trim_to_used_range(matrix: list[list[Any]]) -> list[list[Any]]:
    """Drop leading rows and columns with no cell set, so row 0 is the first used row."""
    filled = [i for i, row in enumerate(matrix) if any(cell is not None for cell in row)]
    if not filled:
        return []
    rows = matrix[filled[0]:]
    first_col = min(
        next(j for j, cell in enumerate(row) if cell is not None)
        for row in rows
        if any(cell is not None for cell in row)
    )
    return [row[first_col:] for row in rows]


def frame_to_matrix(df) -> list[list[Any]]:
    return trim_to_used_range([
        [normalize_scalar(value) for value in row]
        for row in df.itertuples(index=False, name=None)
    ])


def load_workbook(source: WorkbookSource) -> dict:
    """
    Load every sheet of a workbook as a matrix of raw cell values.

    No type coercion beyond the reader's native cell typing: numbers stay
    numbers, text stays text, empty cells are ``None``.

    Raises:
        FileNotFoundError  if a path is given and does not exist.
        ValueError         if a path has an unsupported extension.
        WorkbookReadError  if the bytes are not a readable workbook.
        ImportError        if .xls input is given and xlrd is missing.
    """
    import pandas as pd

    raw = _read_source_bytes(source)
    if not raw:
        raise WorkbookReadError("Could not read workbook: file is empty")

    detected_format = detect_format(raw)
    engine = _engine_for(detected_format)

    try:
        xf = pd.ExcelFile(io.BytesIO(raw), engine=engine)
    except Exception as exc:
        raise WorkbookReadError(f"Could not read workbook: {exc}") from exc

    warnings: list[str] = []
    sheets: dict[str, list[list[Any]]] = {}
    with xf:
        sheet_names = [str(name) for name in xf.sheet_names]
        for name in xf.sheet_names:
            try:
                df = xf.parse(sheet_name=name, header=None, dtype=object)
            except Exception as exc:
                warnings.append(f"Could not load sheet '{name}': {exc}")
                continue
            sheets[str(name)] = frame_to_matrix(df)

    return {
        "sheets":          sheets,
        "sheet_names":     sheet_names,
        "detected_format": detected_format,
        "warnings":        warnings,
    }
