"""Per-sheet processing contexts for one uploaded workbook.

A :class:`ProcessingSession` is an ordered collection of independent
:class:`SheetContext` objects. Each context owns its raw rows, its resolved
keys (through its memoised aggregation) and its export fields. Nothing is
shared between sheets, and loading a new workbook discards everything.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterator, Optional

from nominales_txt.aggregator import AggregationResult, aggregate_records
from nominales_txt.extractor import read_sheets
from nominales_txt.formatter import export_filename, generate_txt
from nominales_txt.loader import WorkbookSource

EDITABLE_FIELDS = ("placement_code", "denomination")
FIELD_LABELS = {"placement_code": "Colocación", "denomination": "Denominación"}


class MissingExportFieldsError(ValueError):
    def __init__(self, sheet_name: str, missing: list[str]) -> None:
        labels = ", ".join(FIELD_LABELS[name] for name in missing)
        super().__init__(f"Sheet '{sheet_name}': complete {labels} before exporting")
        self.sheet_name = sheet_name
        self.missing = missing


@dataclass(frozen=True)
class SheetContext:
    sheet_name: str
    rows: tuple[dict[str, Any], ...]
    header_row: Optional[int] = None
    placement_code: str = ""
    denomination: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    _cache: dict = field(default_factory=dict, repr=False, compare=False)

    def result(self) -> AggregationResult:
        # shared with replace() copies; valid only for the rows object it was built from
        if self._cache.get("rows") is not self.rows:
            self._cache.clear()
            self._cache["rows"] = self.rows
            self._cache["result"] = aggregate_records(self.rows)
        return self._cache["result"]

    def missing_export_fields(self) -> list[str]:
        return [name for name in EDITABLE_FIELDS if not getattr(self, name)]

    @property
    def can_export(self) -> bool:
        return not self.missing_export_fields()

    def export_text(self) -> str:
        missing = self.missing_export_fields()
        if missing:
            raise MissingExportFieldsError(self.sheet_name, missing)
        return generate_txt(self.result().entries, self.placement_code, self.denomination)

    def export_filename(self) -> str:
        return export_filename(self.denomination)


class ProcessingSession:
    def __init__(self) -> None:
        self._sheets: list[SheetContext] = []
        self.global_placement = ""
        self.detected_format: Optional[str] = None
        self.warnings: list[str] = []

    @classmethod
    def from_source(cls, source: WorkbookSource, global_placement: str = "") -> "ProcessingSession":
        session = cls()
        session.load(source, global_placement=global_placement)
        return session

    def load(self, source: WorkbookSource, global_placement: Optional[str] = None) -> None:
        """Replace all state with the sheets of a new workbook; read errors leave the session empty."""
        self.reset(keep_global=global_placement is None)
        if global_placement is not None:
            self.global_placement = global_placement
        loaded = read_sheets(source)
        self.detected_format = loaded["detected_format"]
        self.warnings = list(loaded["warnings"])
        self._sheets = [
            SheetContext(
                sheet_name=name,
                rows=tuple(rows),
                header_row=loaded["header_rows"].get(name),
                placement_code=self.global_placement,
                denomination=name,
            )
            for name, rows in loaded["sheets"].items()
        ]

    def reset(self, keep_global: bool = False) -> None:
        self._sheets = []
        self.detected_format = None
        self.warnings = []
        if not keep_global:
            self.global_placement = ""

    def set_global_placement(self, value: str) -> None:
        """Remember ``value`` and prefill it into sheets whose placement is still blank."""
        self.global_placement = value
        self._sheets = [
            sheet if sheet.placement_code else replace(sheet, placement_code=value)
            for sheet in self._sheets
        ]

    def update_sheet(self, sheet_id: str, field_name: str, value: str) -> SheetContext:
        if field_name not in EDITABLE_FIELDS:
            raise ValueError(f"Unknown sheet field: {field_name}")
        for idx, sheet in enumerate(self._sheets):
            if sheet.id == sheet_id:
                updated = replace(sheet, **{field_name: value})
                self._sheets[idx] = updated
                return updated
        raise KeyError(sheet_id)

    def get(self, sheet_id: str) -> SheetContext:
        for sheet in self._sheets:
            if sheet.id == sheet_id:
                return sheet
        raise KeyError(sheet_id)

    def by_name(self, sheet_name: str) -> SheetContext:
        for sheet in self._sheets:
            if sheet.sheet_name == sheet_name:
                return sheet
        raise KeyError(sheet_name)

    @property
    def sheets(self) -> list[SheetContext]:
        return list(self._sheets)

    def __iter__(self) -> Iterator[SheetContext]:
        return iter(list(self._sheets))

    def __len__(self) -> int:
        return len(self._sheets)
