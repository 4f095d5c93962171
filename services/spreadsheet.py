"""
Workbook assembly with openpyxl: styled header rows, bordered wrapped data cells,
fixed or auto-fit column widths, titled sections, and month/quarter/range windows.
"""
from __future__ import annotations

import calendar
import io
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from services.errors import ValidationError
from services.report_rows import Column

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# ─── Style Definitions ───
HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")
MONTHLY_HEADER_FILL = PatternFill(start_color="FFF9C4", end_color="FFF9C4", fill_type="solid")
TITLE_FONT = Font(bold=True, size=16)
SECTION_FONT = Font(bold=True, size=14)
THIN = Side(style="thin")
THIN_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
CURRENCY_FORMAT = "₹#,##0.00"

DEFAULT_MAX_WIDTH = 50
MIN_AUTOFIT_WIDTH = 10

MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")
DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class Section:
    title: Optional[str]
    rows: list[list[Any]] = field(default_factory=list)


@dataclass
class SheetLayout:
    columns: list[Column]
    sheet_title: str = "Report"
    title: Optional[str] = None
    autofit: bool = False
    max_width: int = DEFAULT_MAX_WIDTH
    # header -> width, applied after auto-fit and not capped
    width_overrides: dict[str, int] = field(default_factory=dict)
    alignment: str = "left"
    header_fill: PatternFill = HEADER_FILL


def _style_header(ws, row: int, columns: list[Column], fill: PatternFill) -> None:
    for idx, column in enumerate(columns, start=1):
        cell = ws.cell(row=row, column=idx, value=column.header or None)
        if not column.header:
            continue
        cell.font = HEADER_FONT
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _write_title(ws, row: int, text: str, width: int, font: Font) -> None:
    ws.cell(row=row, column=1, value=text)
    if width > 1:
        ws.merge_cells(start_row=row, start_column=1, end_row=row, end_column=width)
    cell = ws.cell(row=row, column=1)
    cell.font = font
    cell.alignment = Alignment(horizontal="center", vertical="center")


def _write_rows(ws, start_row: int, rows: list[list[Any]], columns: list[Column], alignment: str) -> int:
    r = start_row
    data_alignment = Alignment(horizontal=alignment, vertical="center", wrap_text=True)
    for values in rows:
        for idx, column in enumerate(columns, start=1):
            value = values[idx - 1] if idx - 1 < len(values) else ""
            cell = ws.cell(row=r, column=idx, value=value)
            cell.alignment = data_alignment
            cell.border = THIN_BORDER
            if column.kind == "currency" and value not in ("", None):
                cell.number_format = CURRENCY_FORMAT
        r += 1
    return r


def _apply_widths(ws, layout: SheetLayout, skip_rows: set[int]) -> None:
    for idx, column in enumerate(layout.columns, start=1):
        letter = get_column_letter(idx)
        if layout.autofit:
            max_len = 0
            for (cell,) in ws.iter_rows(min_col=idx, max_col=idx):
                if cell.row in skip_rows or cell.value is None:
                    continue
                max_len = max(max_len, len(str(cell.value)))
            width = min(max(max_len, MIN_AUTOFIT_WIDTH) + 2, layout.max_width)
        else:
            width = column.width
        ws.column_dimensions[letter].width = layout.width_overrides.get(column.header, width)


def render_workbook(layout: SheetLayout, sections: list[Section]) -> Workbook:
    """
    Build a single-sheet workbook. With one untitled section the header row is frozen and
    filterable; titled sections are stacked with a title row, a spacer and their own header.
    An empty section still gets its header row.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = layout.sheet_title[:31]
    width = len(layout.columns)
    title_rows: set[int] = set()
    r = 1

    if layout.title:
        _write_title(ws, r, layout.title, width, TITLE_FONT)
        title_rows.add(r)
        r += 2

    single = len(sections) == 1 and not sections[0].title
    for n, section in enumerate(sections):
        if n:
            r += 2
        if section.title:
            _write_title(ws, r, section.title, width, SECTION_FONT)
            title_rows.add(r)
            r += 2
        header_row = r
        _style_header(ws, header_row, layout.columns, layout.header_fill)
        r = _write_rows(ws, header_row + 1, section.rows, layout.columns, layout.alignment)
        if single:
            ws.freeze_panes = f"A{header_row + 1}"
            ws.auto_filter.ref = f"A{header_row}:{get_column_letter(width)}{max(header_row, r - 1)}"

    _apply_widths(ws, layout, title_rows)
    return wb


def workbook_bytes(wb: Workbook) -> bytes:
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def save_workbook(wb: Workbook, directory: str | Path, filename: str) -> Path:
    """Write into the transient export directory; the caller deletes the file after download."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / filename
    wb.save(path)
    logger.info("Excel exported: %s", path)
    return path


def artifact_name(kind: str, ref: Optional[str] = None, timestamp: Optional[int] = None) -> str:
    """<Kind>_<ref or All>_<epoch ms>.xlsx"""
    ref_part = re.sub(r"\s+", "_", (ref or "All").strip()) or "All"
    ts = timestamp if timestamp is not None else int(time.time() * 1000)
    return f"{kind}_{ref_part}_{ts}.xlsx"


#
# --- Date windows ---
#


def month_range(month: Optional[str]) -> tuple[datetime, datetime]:
    """First day 00:00 to last day 23:59:59.999 of a YYYY-MM month."""
    if not month or not MONTH_PATTERN.fullmatch(month):
        raise ValidationError("Month must be in YYYY-MM format (e.g. 2026-01)")
    year, month_num = (int(p) for p in month.split("-"))
    if not 1 <= month_num <= 12:
        raise ValidationError("Month must be between 01 and 12")
    last_day = calendar.monthrange(year, month_num)[1]
    return datetime(year, month_num, 1), datetime(year, month_num, last_day, 23, 59, 59, 999000)


def quarter_range(quarter: Any, year: Any) -> tuple[datetime, datetime]:
    try:
        q = int(quarter)
        y = int(year)
    except (TypeError, ValueError):
        raise ValidationError("Quarter must be 1, 2, 3, or 4 and year must be a number")
    if not 1 <= q <= 4:
        raise ValidationError("Quarter must be 1, 2, 3, or 4")
    if not 2000 <= y <= 2100:
        raise ValidationError("Year must be valid (2000-2100)")
    first_month = 3 * (q - 1) + 1
    start, _ = month_range(f"{y:04d}-{first_month:02d}")
    _, end = month_range(f"{y:04d}-{first_month + 2:02d}")
    return start, end


def custom_range(start_date: Optional[str], end_date: Optional[str]) -> tuple[datetime, datetime]:
    for label, value in (("startDate", start_date), ("endDate", end_date)):
        if not value or not DAY_PATTERN.fullmatch(value):
            raise ValidationError(f"{label} must be in YYYY-MM-DD format")
    try:
        start = datetime.strptime(start_date, "%Y-%m-%d")
        end = datetime.strptime(end_date, "%Y-%m-%d").replace(hour=23, minute=59, second=59, microsecond=999000)
    except ValueError:
        raise ValidationError("startDate and endDate must be real calendar dates")
    if start > end:
        raise ValidationError("startDate must be before endDate")
    return start, end
