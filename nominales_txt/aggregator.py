from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

from nominales_txt.cells import (
    CELL_NUMBER,
    CELL_TEXT,
    classify_cell,
    normalize_scalar,
    to_text,
)
from nominales_txt.resolver import FieldKeys, resolve_field_keys

Number = Union[int, float]

DECIMAL_PREFIX_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
NON_DIGIT_RE = re.compile(r"[^0-9]")


@dataclass
class AggregatedEntry:
    identifier: str
    name: str
    quantity: Number

    def as_dict(self) -> dict[str, Any]:
        return {"identifier": self.identifier, "name": self.name, "quantity": self.quantity}


@dataclass(frozen=True)
class SheetSummary:
    row_count: int
    unique_identifier_count: int
    total_quantity: Number

    def as_dict(self) -> dict[str, Any]:
        return {
            "row_count": self.row_count,
            "unique_identifier_count": self.unique_identifier_count,
            "total_quantity": self.total_quantity,
        }


@dataclass(frozen=True)
class AggregationResult:
    entries: list[AggregatedEntry]
    summary: SheetSummary
    field_keys: FieldKeys
    warnings: list[str] = field(default_factory=list)


def clean_identifier(value: Any) -> str:
    """``"20-12345678-9"`` -> ``"20123456789"``; empty when no digit survives."""
    return NON_DIGIT_RE.sub("", to_text(value))


def parse_decimal(text: str) -> float:
    """Parse the leading decimal literal of ``text``; NaN when there is none."""
    match = DECIMAL_PREFIX_RE.match(text.strip())
    if not match:
        return math.nan
    return float(match.group(0))


def parse_quantity(value: Any) -> Number:
    """
    Parse a quantity cell, Argentine convention for text.

    Text with both ``,`` and ``.`` treats ``.`` as thousands and ``,`` as
    decimal separator; text with only ``,`` treats it as decimal separator.
    Anything that does not parse becomes 0.
    """
    kind = classify_cell(value)
    if kind == CELL_NUMBER:
        number = normalize_scalar(value)
    elif kind == CELL_TEXT:
        text = value.strip()
        if "," in text and "." in text:
            text = text.replace(".", "").replace(",", ".", 1)
        elif "," in text:
            text = text.replace(",", ".", 1)
        number = parse_decimal(text)
    else:
        number = 0
    if isinstance(number, float) and not math.isfinite(number):
        return 0
    return number


def extract_name(record: dict[str, Any], name_key: Optional[str]) -> str:
    if name_key is None:
        return ""
    return to_text(record.get(name_key)).strip()


def summarize(records: Sequence[dict[str, Any]], entries: Sequence[AggregatedEntry]) -> SheetSummary:
    return SheetSummary(
        row_count=len(records),
        unique_identifier_count=len(entries),
        total_quantity=sum(entry.quantity for entry in entries),
    )


def aggregate_records(
    records: Sequence[dict[str, Any]],
    field_keys: Optional[FieldKeys] = None,
) -> AggregationResult:
    """
    Group records by cleaned identifier and sum their quantities.

    ``row_count`` always reflects the raw input size. When no identifier
    column resolves the result is empty but still carries ``row_count``
    and a warning.
    """
    if field_keys is None:
        field_keys = resolve_field_keys(records)

    if field_keys.identifier is None:
        return AggregationResult(
            entries=[],
            summary=SheetSummary(row_count=len(records), unique_identifier_count=0, total_quantity=0),
            field_keys=field_keys,
            warnings=["Could not identify CUIT column"],
        )

    warnings: list[str] = []
    if field_keys.quantity is None:
        warnings.append("Could not identify nominales column; quantities default to 0")

    grouped: dict[str, AggregatedEntry] = {}
    for record in records:
        identifier = clean_identifier(record.get(field_keys.identifier))
        if not identifier:
            continue

        name = extract_name(record, field_keys.name)
        quantity = parse_quantity(record.get(field_keys.quantity)) if field_keys.quantity else 0

        existing = grouped.get(identifier)
        if existing is None:
            grouped[identifier] = AggregatedEntry(identifier=identifier, name=name, quantity=quantity)
            continue
        existing.quantity += quantity
        if not existing.name and name:
            existing.name = name

    entries = list(grouped.values())
    return AggregationResult(
        entries=entries,
        summary=summarize(records, entries),
        field_keys=field_keys,
        warnings=warnings,
    )
