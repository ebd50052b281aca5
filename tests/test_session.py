import tempfile
import unittest
from dataclasses import replace
from pathlib import Path

from openpyxl import Workbook

from nominales_txt.session import MissingExportFieldsError, ProcessingSession, SheetContext


def build_two_sheet_workbook(path: Path) -> Path:
    wb = Workbook()
    ws = wb.active
    ws.title = "LECAP"
    ws.append(["CUIT", "Nombre", "Nominales"])
    ws.append(["20-111-1", "A", "1.000,00"])
    ws.append(["20-111-1", None, 200])
    on = wb.create_sheet("ON")
    on.append(["Titular", "Observaciones"])
    on.append(["B", "sin CUIT"])
    wb.save(path)
    return path


class SheetContextTests(unittest.TestCase):
    def make_context(self, **overrides):
        values = dict(
            sheet_name="LECAP",
            rows=(
                {"CUIT": "20-111-1", "Nombre": "A", "Nominales": "1.000,00"},
                {"CUIT": "20-111-1", "Nombre": "", "Nominales": 200},
            ),
            placement_code="4663",
            denomination="LECAP",
        )
        values.update(overrides)
        return SheetContext(**values)

    def test_export_text_matches_settlement_format(self):
        sheet = self.make_context()
        self.assertEqual(sheet.export_text(), "4663\tLECAP\t1200\t201111\tA\t200\tPersona Humana\tCUIT")
        self.assertEqual(sheet.export_filename(), "LECAP.txt")

    def test_missing_export_fields_are_rejected(self):
        sheet = self.make_context(placement_code="", denomination="")
        self.assertFalse(sheet.can_export)
        with self.assertRaises(MissingExportFieldsError) as ctx:
            sheet.export_text()
        self.assertEqual(ctx.exception.missing, ["placement_code", "denomination"])
        self.assertIn("Colocación", str(ctx.exception))

    def test_only_empty_export_fields_count_as_missing(self):
        sheet = self.make_context(placement_code=" ", denomination="LECAP")
        self.assertEqual(sheet.missing_export_fields(), [])
        self.assertTrue(sheet.export_text().startswith(" \tLECAP\t1200\t"))

    def test_result_is_memoised(self):
        sheet = self.make_context()
        self.assertIs(sheet.result(), sheet.result())

    def test_copies_with_new_rows_do_not_reuse_cached_result(self):
        sheet = self.make_context()
        first = sheet.result()

        relabelled = replace(sheet, placement_code="1111")
        self.assertIs(relabelled.result(), first)

        reloaded = replace(sheet, rows=({"CUIT": "27-222-2", "Nombre": "B", "Nominales": 5},))
        self.assertEqual([entry.identifier for entry in reloaded.result().entries], ["272222"])
        self.assertEqual([entry.identifier for entry in sheet.result().entries], ["201111"])


class ProcessingSessionTests(unittest.TestCase):
    def test_sessions_hold_one_context_per_sheet(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            session = ProcessingSession.from_source(build_two_sheet_workbook(Path(tmpdir) / "book.xlsx"))

        self.assertEqual([sheet.sheet_name for sheet in session], ["LECAP", "ON"])
        self.assertEqual([sheet.denomination for sheet in session], ["LECAP", "ON"])
        self.assertEqual(session.detected_format, "xlsx")

        lecap = session.by_name("LECAP").result()
        self.assertEqual(lecap.summary.unique_identifier_count, 1)
        self.assertEqual(lecap.summary.total_quantity, 1200.0)

        on = session.by_name("ON").result()
        self.assertEqual(on.entries, [])
        self.assertEqual(on.summary.row_count, 1)

    def test_global_placement_prefills_only_blank_sheets(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            session = ProcessingSession.from_source(build_two_sheet_workbook(Path(tmpdir) / "book.xlsx"))

        lecap_id = session.by_name("LECAP").id
        session.update_sheet(lecap_id, "placement_code", "1111")
        session.set_global_placement("4663")

        self.assertEqual(session.get(lecap_id).placement_code, "1111")
        self.assertEqual(session.by_name("ON").placement_code, "4663")
        self.assertEqual(session.global_placement, "4663")

    def test_editing_fields_does_not_reaggregate(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            session = ProcessingSession.from_source(build_two_sheet_workbook(Path(tmpdir) / "book.xlsx"))

        before = session.by_name("LECAP")
        first = before.result()
        after = session.update_sheet(before.id, "denomination", "LECAP VTO 30/04/26")

        self.assertIs(after.result(), first)
        self.assertEqual(before.denomination, "LECAP")
        self.assertEqual(after.export_filename(), "LECAP VTO 30_04_26.txt")

    def test_update_rejects_unknown_sheet_and_field(self):
        session = ProcessingSession()
        with self.assertRaises(KeyError):
            session.update_sheet("missing", "denomination", "X")
        with self.assertRaises(ValueError):
            session.update_sheet("missing", "rows", "X")

    def test_reset_discards_state(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            session = ProcessingSession.from_source(
                build_two_sheet_workbook(Path(tmpdir) / "book.xlsx"),
                global_placement="4663",
            )
        session.reset()
        self.assertEqual(len(session), 0)
        self.assertEqual(session.global_placement, "")


if __name__ == "__main__":
    unittest.main()
