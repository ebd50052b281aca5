"""Cell values as delivered by the spreadsheet reader.

Workbook cells arrive loosely typed (``None``, ``str``, ``int``, ``float``,
dates, booleans, pandas NaN/NaT). Everything downstream branches on the tag
returned by :func:`classify_cell` instead of relying on implicit coercion.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timezone
from typing import Any

import pandas as pd

CELL_ABSENT = "absent"
CELL_TEXT = "text"
CELL_NUMBER = "number"
CELL_OTHER = "other"


def normalize_scalar(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return None
        if value.tzinfo is not None:
            value = value.tz_convert(None)
        return value.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, (str, bool, date, time)):
        return value
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if hasattr(value, "item"):
        # numpy scalars
        return value.item()
    return value


def classify_cell(value: Any) -> str:
    value = normalize_scalar(value)
    if value is None:
        return CELL_ABSENT
    if isinstance(value, bool):
        return CELL_OTHER
    if isinstance(value, (int, float)):
        return CELL_NUMBER
    if isinstance(value, str):
        return CELL_TEXT
    return CELL_OTHER


def is_falsy(value: Any) -> bool:
    """Mirror spreadsheet-export falsiness: empty, zero, NaN and False."""
    value = normalize_scalar(value)
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (int, float)):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    return False


def format_number(value: int | float) -> str:
    if isinstance(value, float):
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def to_text(value: Any) -> str:
    """Stringify a cell the way it reads in the sheet; falsy cells become ``""``."""
    if is_falsy(value):
        return ""
    value = normalize_scalar(value)
    if isinstance(value, bool):
        return "true"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.strftime("%Y-%m-%d")
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    return str(value)
