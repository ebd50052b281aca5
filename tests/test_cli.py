from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

from openpyxl import Workbook

ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "nominales_txt.cli"]
FIXED_STAMP = "20260301T010203Z"


def run_cli(*args: str, cwd: Path = ROOT) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["NOMINALES_TXT_OUTPUT_STAMP"] = FIXED_STAMP
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT), env.get("PYTHONPATH")]))
    return subprocess.run(
        [*CLI, *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        env=env,
    )


def build_workbook(path: Path) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "LECAP"
    ws.append(["Reporte de tenencias"])
    ws.append(["CUIT", "Nombre", "Nominales"])
    ws.append(["20-111-1", "A", "1.000,00"])
    ws.append(["20-111-1", None, 200])
    on = wb.create_sheet("ON Clase 5")
    on.append(["Cuil", "Apellido y Nombre", "VN"])
    on.append(["27-222-2", "B", "2.500,75"])
    wb.create_sheet("Vacia")
    wb.save(path)
    return path


class NominalesCliTests(unittest.TestCase):
    def test_inspect_prints_sheet_summaries(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            proc = run_cli("inspect", str(path))

        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertIn("Sheet: LECAP", proc.stderr)
        self.assertIn("Header: row 2", proc.stderr)
        self.assertIn("Nominales totales: 1.200", proc.stderr)
        self.assertIn("Nominales totales: 2.500,75", proc.stderr)
        self.assertNotIn("Vacia", proc.stderr)

    def test_inspect_json_stdout_contains_only_json(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            proc = run_cli("inspect", str(path), "--json")

        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "nominales_txt.inspect")
        sheets = {sheet["sheet_name"]: sheet for sheet in payload["sheets"]}
        self.assertEqual(sheets["LECAP"]["columns"], {"identifier": "CUIT", "quantity": "Nominales", "name": "Nombre"})
        self.assertEqual(sheets["LECAP"]["summary"]["unique_identifier_count"], 1)
        self.assertEqual(sheets["ON Clase 5"]["header_row"], 1)
        self.assertEqual(proc.stderr.strip(), "")

    def test_export_writes_one_txt_per_sheet(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            out_dir = Path(tmpdir) / "out"
            proc = run_cli(
                "export",
                str(path),
                "--placement",
                "4663",
                "--denomination",
                "ON Clase 5=ON CLASE 5 VTO 01/02/27",
                "--out",
                str(out_dir),
            )
            self.assertEqual(proc.returncode, 0, proc.stderr)
            lecap = (out_dir / "LECAP.txt").read_text(encoding="utf-8")
            on = (out_dir / "ON CLASE 5 VTO 01_02_27.txt").read_text(encoding="utf-8")

        self.assertEqual(lecap, "4663\tLECAP\t1200\t201111\tA\t200\tPersona Humana\tCUIT")
        self.assertEqual(
            on,
            "4663\tON CLASE 5 VTO 01/02/27\t2500,75\t272222\tB\t200\tPersona Humana\tCUIT",
        )

    def test_export_default_output_directory_uses_stamp(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            proc = run_cli("export", str(path), "--placement", "1", "--sheet", "LECAP", cwd=Path(tmpdir))
            output = Path(tmpdir) / "nominales-txt-output" / f"book-{FIXED_STAMP}" / "LECAP.txt"
            self.assertEqual(proc.returncode, 0, proc.stderr)
            self.assertTrue(output.exists())
            self.assertFalse(output.with_name("ON Clase 5.txt").exists())

    def test_export_without_placement_writes_nothing(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            out_dir = Path(tmpdir) / "out"
            proc = run_cli("export", str(path), "--placement-for", "LECAP=4663", "--out", str(out_dir))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("Sheet 'ON Clase 5'", proc.stderr)
            self.assertFalse(out_dir.exists())

    def test_export_refuses_to_overwrite(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            out_dir = Path(tmpdir) / "out"
            out_dir.mkdir()
            (out_dir / "LECAP.txt").write_text("previous", encoding="utf-8")
            proc = run_cli("export", str(path), "--placement", "1", "--out", str(out_dir))
            self.assertEqual(proc.returncode, 1)
            self.assertIn("Refusing to overwrite", proc.stderr)
            self.assertEqual((out_dir / "LECAP.txt").read_text(encoding="utf-8"), "previous")

    def test_export_unknown_sheet_is_a_command_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = build_workbook(Path(tmpdir) / "book.xlsx")
            proc = run_cli("export", str(path), "--placement", "1", "--sheet", "Nope")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Sheet(s) not found", proc.stderr)

    def test_unreadable_workbook_returns_exit_2(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "corrupt.xlsx"
            path.write_bytes(b"not a workbook")
            proc = run_cli("inspect", str(path))
        self.assertEqual(proc.returncode, 2)
        self.assertIn("Could not read workbook", proc.stderr)

    def test_workbook_without_usable_sheets_returns_exit_3(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "blank.xlsx"
            Workbook().save(path)
            proc = run_cli("inspect", str(path))
        self.assertEqual(proc.returncode, 3)
        self.assertIn("No sheets with data rows", proc.stderr)

    def test_missing_input_returns_exit_1(self):
        proc = run_cli("inspect", "does-not-exist.xlsx")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("File not found", proc.stderr)

    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0)
        self.assertEqual(proc.stdout.strip(), "0.1.0")


if __name__ == "__main__":
    unittest.main()
