"""Shared versioned contracts for nominales-txt JSON outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from nominales_txt.session import SheetContext

CONTRACT_VERSIONS = {
    "nominales_txt.inspect": "1.0.0",
    "nominales_txt.export": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_sheet_payload(sheet: SheetContext) -> dict[str, Any]:
    result = sheet.result()
    return {
        "sheet_name": sheet.sheet_name,
        "header_row": None if sheet.header_row is None else sheet.header_row + 1,
        "columns": result.field_keys.as_dict(),
        "summary": result.summary.as_dict(),
        "placement_code": sheet.placement_code,
        "denomination": sheet.denomination,
        "warnings": list(result.warnings),
    }


def build_run_summary(
    *,
    tool: str,
    command: str,
    input_path: Path,
    status: str = "ok",
    output_paths: list[Path] | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": str(input_path),
        "output_files": [str(path) for path in output_paths or []],
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
