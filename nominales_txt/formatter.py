"""Serialise aggregated entries into the 8-column settlement TXT."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Union

from nominales_txt.aggregator import AggregatedEntry

Number = Union[int, float]

FIELD_SEPARATOR = "\t"
RECORD_SEPARATOR = "\n"
INVESTOR_TYPE_CODE = "200"
INVESTOR_TYPE_LABEL = "Persona Humana"
IDENTIFIER_TYPE = "CUIT"
EXPORT_SUFFIX = ".txt"

_PATH_SEPARATOR_RE = re.compile(r"[\\/]")


def is_integral(value: Number) -> bool:
    if isinstance(value, int):
        return True
    return math.isfinite(value) and float(value).is_integer()


def _round_2(value: Number, *, shortest: bool = False) -> Decimal:
    # shortest: round the printed repr (12.345 -> 12.35) instead of the exact binary value
    source = Decimal(repr(value)) if shortest and isinstance(value, float) else Decimal(value)
    return source.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_quantity(value: Number) -> str:
    """``1200.0`` -> ``"1200"``, ``1234.5`` -> ``"1234,50"``."""
    if is_integral(value):
        return str(int(value))
    return f"{_round_2(value):f}".replace(".", ",")


def format_display_total(value: Number) -> str:
    """es-AR display: ``.`` groups thousands, ``,`` marks decimals, at most 2 decimals."""
    rounded = _round_2(value, shortest=True)
    sign = "-" if rounded < 0 else ""
    integer_part, _, fraction = f"{abs(rounded):f}".partition(".")
    grouped = f"{int(integer_part):,}".replace(",", ".")
    fraction = fraction.rstrip("0")
    return f"{sign}{grouped},{fraction}" if fraction else f"{sign}{grouped}"


def build_output_record(entry: AggregatedEntry, placement_code: str, denomination: str) -> list[str]:
    return [
        placement_code,
        denomination,
        format_quantity(entry.quantity),
        entry.identifier,
        entry.name,
        INVESTOR_TYPE_CODE,
        INVESTOR_TYPE_LABEL,
        IDENTIFIER_TYPE,
    ]


def generate_txt(entries: Iterable[AggregatedEntry], placement_code: str, denomination: str) -> str:
    """One tab-separated record per entry, newline-joined, no header and no trailing newline."""
    return RECORD_SEPARATOR.join(
        FIELD_SEPARATOR.join(build_output_record(entry, placement_code, denomination))
        for entry in entries
    )


def export_filename(denomination: str) -> str:
    """``"LECAP VTO 30/04/26"`` -> ``"LECAP VTO 30_04_26.txt"``."""
    name = _PATH_SEPARATOR_RE.sub("_", denomination.strip())
    return name if name.endswith(EXPORT_SUFFIX) else f"{name}{EXPORT_SUFFIX}"
