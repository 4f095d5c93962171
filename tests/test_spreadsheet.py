"""
Spreadsheet renderer: header styling, sections, widths, currency format, date windows.
Run from project root: python -m pytest tests/test_spreadsheet.py -v
"""
import io
import tempfile
import unittest
from datetime import datetime

from openpyxl import load_workbook

from services.errors import ValidationError
from services.report_rows import SPACER, Column
from services.spreadsheet import (
    CURRENCY_FORMAT,
    DEFAULT_MAX_WIDTH,
    MIN_AUTOFIT_WIDTH,
    Section,
    SheetLayout,
    artifact_name,
    custom_range,
    month_range,
    quarter_range,
    render_workbook,
    save_workbook,
    workbook_bytes,
)

COLUMNS = [
    Column("Name", "name", 20),
    SPACER,
    Column("Remaining Amount", "remaining_amount", 18, "currency"),
    Column("Notes", "notes", 30),
]


class TestRenderWorkbook(unittest.TestCase):
    def test_single_section_header_and_filter(self):
        wb = render_workbook(SheetLayout(COLUMNS, sheet_title="Sales"), [Section(None, [["A", "", 1500, "x"]])])
        ws = wb.active
        self.assertEqual(ws.title, "Sales")
        header = ws.cell(row=1, column=1)
        self.assertEqual(header.value, "Name")
        self.assertTrue(header.font.bold)
        self.assertEqual(header.fill.start_color.rgb[-6:], "FFFF00")
        self.assertEqual(header.alignment.horizontal, "center")
        self.assertEqual(ws.freeze_panes, "A2")
        self.assertEqual(ws.auto_filter.ref, "A1:D2")

    def test_spacer_header_unstyled(self):
        ws = render_workbook(SheetLayout(COLUMNS), [Section(None, [])]).active
        spacer = ws.cell(row=1, column=2)
        self.assertIsNone(spacer.value)
        self.assertIsNone(spacer.fill.fill_type)

    def test_currency_only_on_non_blank(self):
        rows = [["A", "", 250000, ""], ["B", "", "", ""]]
        ws = render_workbook(SheetLayout(COLUMNS), [Section(None, rows)]).active
        self.assertEqual(ws.cell(row=2, column=3).number_format, CURRENCY_FORMAT)
        self.assertNotEqual(ws.cell(row=3, column=3).number_format, CURRENCY_FORMAT)

    def test_header_only_when_empty(self):
        ws = render_workbook(SheetLayout(COLUMNS), [Section(None, [])]).active
        self.assertEqual(ws.max_row, 1)
        self.assertEqual(ws.freeze_panes, "A2")
        reloaded = load_workbook(io.BytesIO(workbook_bytes(ws.parent))).active
        self.assertEqual(reloaded.max_row, 1)
        self.assertEqual(ws.cell(row=1, column=4).value, "Notes")

    def test_title_and_sections(self):
        layout = SheetLayout(COLUMNS, title="Monthly Report - All Sales - 2026-01")
        sections = [Section("PART DISBURSED CASES", [["A", "", 1, ""]]), Section("MASTER DATA", [["B", "", 2, ""]])]
        ws = render_workbook(layout, sections).active
        self.assertEqual(ws.cell(row=1, column=1).value, "Monthly Report - All Sales - 2026-01")
        self.assertEqual(ws.cell(row=1, column=1).font.size, 16)
        self.assertIn("A1:D1", [str(r) for r in ws.merged_cells.ranges])
        # title, spacer, section title, spacer, header, one row
        self.assertEqual(ws.cell(row=3, column=1).value, "PART DISBURSED CASES")
        self.assertEqual(ws.cell(row=5, column=1).value, "Name")
        self.assertEqual(ws.cell(row=6, column=1).value, "A")
        # two blank rows, then the next section
        self.assertEqual(ws.cell(row=9, column=1).value, "MASTER DATA")
        self.assertEqual(ws.cell(row=11, column=1).value, "Name")
        self.assertEqual(ws.cell(row=12, column=1).value, "B")
        self.assertIsNone(ws.freeze_panes)

    def test_fixed_widths(self):
        ws = render_workbook(SheetLayout(COLUMNS), [Section(None, [])]).active
        self.assertEqual(ws.column_dimensions["A"].width, 20)
        self.assertEqual(ws.column_dimensions["D"].width, 30)

    def test_autofit_widths(self):
        layout = SheetLayout(COLUMNS, autofit=True, width_overrides={"Notes": 150})
        rows = [["Al", "", 1, "n"], ["x" * 200, "", 2, "n"]]
        ws = render_workbook(layout, [Section(None, rows)]).active
        self.assertEqual(ws.column_dimensions["A"].width, DEFAULT_MAX_WIDTH)
        self.assertEqual(ws.column_dimensions["B"].width, MIN_AUTOFIT_WIDTH + 2)
        self.assertEqual(ws.column_dimensions["C"].width, len("Remaining Amount") + 2)
        self.assertEqual(ws.column_dimensions["D"].width, 150)

    def test_bytes_round_trip_and_save(self):
        wb = render_workbook(SheetLayout(COLUMNS), [Section(None, [["A", "", 10, ""]])])
        loaded = load_workbook(io.BytesIO(workbook_bytes(wb)))
        self.assertEqual(loaded.active.cell(row=2, column=1).value, "A")
        with tempfile.TemporaryDirectory() as tmp:
            path = save_workbook(wb, f"{tmp}/nested", "Master_All_1.xlsx")
            self.assertTrue(path.exists())


class TestArtifactName(unittest.TestCase):
    def test_name(self):
        self.assertEqual(artifact_name("Master", None, 1700000000000), "Master_All_1700000000000.xlsx")
        self.assertEqual(artifact_name("Sales", "Ravi Kumar", 5), "Sales_Ravi_Kumar_5.xlsx")


class TestDateWindows(unittest.TestCase):
    def test_month_range(self):
        start, end = month_range("2026-02")
        self.assertEqual(start, datetime(2026, 2, 1))
        self.assertEqual(end, datetime(2026, 2, 28, 23, 59, 59, 999000))
        self.assertEqual(month_range("2024-02")[1].day, 29)

    def test_month_range_invalid(self):
        for month in (None, "", "2026-13", "2026-00", "26-01", "2026-1", "2026-01:00", "2026-02\n"):
            with self.assertRaises(ValidationError):
                month_range(month)

    def test_quarter_range(self):
        start, end = quarter_range("4", 2025)
        self.assertEqual(start, datetime(2025, 10, 1))
        self.assertEqual(end.date().isoformat(), "2025-12-31")
        for quarter, year in (("5", 2025), ("x", 2025), ("1", 1999), (None, None)):
            with self.assertRaises(ValidationError):
                quarter_range(quarter, year)

    def test_custom_range(self):
        start, end = custom_range("2026-01-10", "2026-01-20")
        self.assertEqual(start, datetime(2026, 1, 10))
        self.assertEqual(end.hour, 23)
        invalid = (
            ("2026-01-20", "2026-01-10"),
            ("10-01-2026", "2026-01-20"),
            ("2026-02-30", "2026-03-01"),
            ("2026-01-10\n", "2026-01-20"),
        )
        for args in invalid:
            with self.assertRaises(ValidationError):
                custom_range(*args)


if __name__ == "__main__":
    unittest.main()
