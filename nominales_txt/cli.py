from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from nominales_txt import __version__ as TOOL_VERSION
from nominales_txt.contracts import build_contract, build_run_summary, build_sheet_payload
from nominales_txt.formatter import format_display_total
from nominales_txt.loader import EXCEL_FORMATS, WorkbookReadError
from nominales_txt.session import MissingExportFieldsError, ProcessingSession, SheetContext

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_NO_SHEETS = 3


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class NominalesArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("NOMINALES_TXT_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(input_path: Path) -> Path:
    return Path.cwd() / "nominales-txt-output" / f"{input_path.stem}-{timestamp_token()}"


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def safe_output_path(path: Path) -> Path:
    if path.exists():
        raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)
    return path


def classify_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, (WorkbookReadError, ImportError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def parse_assignments(values: list[str] | None, option: str) -> dict[str, str]:
    assignments: dict[str, str] = {}
    for raw in values or []:
        sheet_name, sep, value = raw.partition("=")
        if not sep or not sheet_name:
            raise CliError(f"{option} expects SHEET=VALUE, got '{raw}'", EXIT_COMMAND_ERROR)
        assignments[sheet_name] = value
    return assignments


def open_session(input_path: Path, global_placement: str = "") -> ProcessingSession:
    suffix = input_path.suffix.lower()
    if suffix not in EXCEL_FORMATS:
        raise CliError(
            f"Unsupported file type '{suffix or '[missing extension]'}'. "
            f"Supported: {', '.join(sorted(EXCEL_FORMATS))}",
            EXIT_COMMAND_ERROR,
        )
    session = ProcessingSession.from_source(input_path, global_placement=global_placement)
    if not len(session):
        raise CliError(f"No sheets with data rows found in {input_path}", EXIT_NO_SHEETS)
    return session


def render_sheet_text(sheet: SheetContext) -> str:
    result = sheet.result()
    summary = result.summary
    keys = result.field_keys
    header = "row 1 (fallback)" if sheet.header_row is None else f"row {sheet.header_row + 1}"
    lines = [
        f"Sheet: {sheet.sheet_name}",
        f"  Header: {header}",
        f"  Rows: {summary.row_count}",
        f"  CUITs unificados: {summary.unique_identifier_count}",
        f"  Nominales totales: {format_display_total(summary.total_quantity)}",
        f"  Columns: CUIT={keys.identifier or '[none]'} | "
        f"Nominales={keys.quantity or '[none]'} | Nombre={keys.name or '[none]'}",
    ]
    lines.extend(f"  Warning: {warning}" for warning in result.warnings)
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = NominalesArgumentParser(
        prog="nominales-txt",
        description="Aggregate nominales per CUIT from holder workbooks and write settlement TXT files.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser("inspect", help="Show detected columns and totals for every sheet.")
    inspect.add_argument("input", help="Input workbook (.xlsx or .xls)")
    inspect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    inspect.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    inspect.add_argument("-v", "--verbose", action="store_true", help="Also print workbook warnings")

    export = subparsers.add_parser("export", help="Write one TXT file per sheet.")
    export.add_argument("input", help="Input workbook (.xlsx or .xls)")
    export.add_argument("--placement", default="", help="Colocación applied to every sheet without its own")
    export.add_argument("--placement-for", dest="placement_for", action="append", metavar="SHEET=CODE", help="Colocación for one sheet")
    export.add_argument("--denomination", action="append", metavar="SHEET=NAME", help="Denominación for one sheet (defaults to the sheet name)")
    export.add_argument("--sheet", dest="sheet_names", action="append", metavar="NAME", help="Only export these sheets")
    export.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    export.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    export.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    export.add_argument("-v", "--verbose", action="store_true", help="Also print workbook warnings")

    subparsers.add_parser("version", help="Print version")
    return parser


def run_inspect(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        session = open_session(input_path)
        sheets = [build_sheet_payload(sheet) for sheet in session]
        if args.json:
            payload = {
                "contract": build_contract("nominales_txt.inspect"),
                "tool_version": TOOL_VERSION,
                "detected_format": session.detected_format,
                "sheets": sheets,
                "run_summary": build_run_summary(
                    tool="nominales-txt",
                    command="inspect",
                    input_path=input_path,
                    metrics={"sheets": len(sheets)},
                    warnings=session.warnings,
                ),
            }
            print(json_dumps(payload))
            return EXIT_SUCCESS

        emit_human(f"nominales-txt inspect\nFile: {input_path}\nSheets: {len(session)}", quiet=args.quiet)
        for sheet in session:
            emit_human(render_sheet_text(sheet), quiet=args.quiet)
        if args.verbose:
            for warning in session.warnings:
                emit_human(f"Warning: {warning}", quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def select_sheets(session: ProcessingSession, names: list[str] | None) -> list[SheetContext]:
    if not names:
        return session.sheets
    available = [sheet.sheet_name for sheet in session]
    unknown = [name for name in names if name not in available]
    if unknown:
        raise CliError(f"Sheet(s) not found: {unknown}. Available: {available}", EXIT_COMMAND_ERROR)
    return [session.by_name(name) for name in names]


def run_export(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        eprint(f"File not found: {input_path}")
        return EXIT_COMMAND_ERROR

    try:
        placements = parse_assignments(args.placement_for, "--placement-for")
        denominations = parse_assignments(args.denomination, "--denomination")
        session = open_session(input_path, global_placement=args.placement)

        available = {sheet.sheet_name for sheet in session}
        unknown = sorted((set(placements) | set(denominations)) - available)
        if unknown:
            raise CliError(f"Sheet(s) not found: {unknown}. Available: {sorted(available)}", EXIT_COMMAND_ERROR)
        for name, value in placements.items():
            session.update_sheet(session.by_name(name).id, "placement_code", value)
        for name, value in denominations.items():
            session.update_sheet(session.by_name(name).id, "denomination", value)

        selected = select_sheets(session, args.sheet_names)
        problems = []
        for sheet in selected:
            try:
                sheet.export_text()
            except MissingExportFieldsError as exc:
                problems.append(str(exc))
        if problems:
            raise CliError("\n".join(problems), EXIT_COMMAND_ERROR)

        out_dir = Path(args.out_dir) if args.out_dir else default_output_dir(input_path)
        planned: dict[Path, SheetContext] = {}
        for sheet in selected:
            path = out_dir / sheet.export_filename()
            if path in planned:
                raise CliError(
                    f"Sheets '{planned[path].sheet_name}' and '{sheet.sheet_name}' would both write {path}",
                    EXIT_COMMAND_ERROR,
                )
            planned[safe_output_path(path)] = sheet

        for path, sheet in planned.items():
            write_text(path, sheet.export_text())
            if not args.json:
                summary = sheet.result().summary
                emit_human(
                    f"{sheet.sheet_name}: {summary.unique_identifier_count} CUITs, "
                    f"{format_display_total(summary.total_quantity)} nominales -> {path}",
                    quiet=args.quiet,
                )
                for warning in sheet.result().warnings:
                    emit_human(f"  Warning: {warning}", quiet=args.quiet)

        if args.json:
            payload = {
                "contract": build_contract("nominales_txt.export"),
                "tool_version": TOOL_VERSION,
                "sheets": [
                    dict(build_sheet_payload(sheet), output_file=str(path))
                    for path, sheet in planned.items()
                ],
                "run_summary": build_run_summary(
                    tool="nominales-txt",
                    command="export",
                    input_path=input_path,
                    output_paths=list(planned),
                    metrics={"files_written": len(planned)},
                    warnings=session.warnings,
                ),
            }
            print(json_dumps(payload))
        elif args.verbose:
            for warning in session.warnings:
                emit_human(f"Warning: {warning}", quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_exception(exc)


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "inspect":
            return run_inspect(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
