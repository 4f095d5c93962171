"""
Report synthesis: filter records, flatten them with a report profile and render the workbook.

build_report() is transport independent; the API layer decides whether the artifact is streamed
from memory or written to the export directory and deleted after download.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from config import settings
from services.errors import NoMatchingRecords, ValidationError
from services.normalizer import normalize_number, parse_date
from services.record_store import as_dict, in_date_range
from services.report_rows import (
    BUILDER_VISIT_APPROVED_PROFILE,
    BUILDER_VISIT_FULL_PROFILE,
    CUSTOMER_REPORT_PROFILE,
    MASTER_PROFILE,
    PART_DISBURSED_STATUS,
    PROFILES,
    SALES_PROFILE,
    Fanout,
    ReportProfile,
    build_rows,
)
from services.spreadsheet import (
    MONTHLY_HEADER_FILL,
    Section,
    SheetLayout,
    artifact_name,
    month_range,
    render_workbook,
    save_workbook,
    workbook_bytes,
)

logger = logging.getLogger(__name__)

# loginDate / sanctionDate / disbursedDate as accepted on the query string
DATE_FIELDS = {
    "loginDate": "login_date",
    "sanctionDate": "sanction_date",
    "disbursedDate": "disbursed_date",
}

REPORT_KINDS = {
    MASTER_PROFILE.name: "Master",
    SALES_PROFILE.name: "Sales",
    CUSTOMER_REPORT_PROFILE.name: "Customer_Report",
    BUILDER_VISIT_FULL_PROFILE.name: "Builder_Visits",
    BUILDER_VISIT_APPROVED_PROFILE.name: "Builder_Visits",
}

PART_DISBURSED_SECTION = "PART DISBURSED CASES"
MASTER_SECTION = "MASTER DATA"


@dataclass
class ReportOptions:
    month: Optional[str] = None
    # (start, end, label) for quarterly and custom range reports
    window: Optional[tuple[datetime, datetime, str]] = None
    sales: Optional[str] = None
    date_field: str = "loginDate"
    fanout: Optional[Fanout] = None
    to_file: bool = False
    export_dir: Optional[str] = None
    ref: Optional[str] = None


@dataclass
class ReportArtifact:
    filename: str
    kind: str
    row_count: int
    record_count: int
    content: Optional[bytes] = None
    path: Optional[Path] = None


def resolve_date_field(name: str) -> str:
    if name in DATE_FIELDS:
        return DATE_FIELDS[name]
    if name in DATE_FIELDS.values():
        return name
    raise ValidationError(f"Invalid dateColumn. Must be one of: {', '.join(DATE_FIELDS)}")


def get_profile(name: str) -> ReportProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ValidationError(f"Unknown report profile: {name}")


def _window(options: ReportOptions) -> Optional[tuple[datetime, datetime, str]]:
    if options.month is not None:
        start, end = month_range(options.month)
        return start, end, options.month
    return options.window


def filter_records(
    records: list[dict[str, Any]], options: ReportOptions, profile: Optional[ReportProfile] = None
) -> list[dict[str, Any]]:
    """
    Apply the profile's record selection, the optional sales identity and the date window.
    Raises NoMatchingRecords for an empty window.
    """
    if profile is not None:
        records = profile.select(records)
    if options.sales:
        records = [r for r in records if r.get("sales") == options.sales]
    window = _window(options)
    if window is None:
        return records
    start, end, label = window
    field_name = resolve_date_field(options.date_field)
    matched = [r for r in records if in_date_range(r.get(field_name), start, end)]
    if not matched:
        sales_info = f" for {options.sales}" if options.sales else ""
        raise NoMatchingRecords(f"No data found{sales_info} in {label}")
    matched.sort(key=lambda r: parse_date(r.get(field_name)))
    return matched


def _layout(profile: ReportProfile, options: ReportOptions) -> SheetLayout:
    columns = profile.layout()
    if profile.name == MASTER_PROFILE.name:
        return SheetLayout(
            columns=columns,
            sheet_title="Master",
            autofit=True,
            width_overrides={"Part Disbursed Details": 150},
        )
    if profile.name == CUSTOMER_REPORT_PROFILE.name:
        window = _window(options)
        period = window[2] if window else "All Time"
        who = options.sales or "All Sales"
        heading = "Monthly Report" if options.month else "Period Report"
        return SheetLayout(
            columns=columns,
            sheet_title=heading,
            title=f"{heading} - {who} - {period}",
            autofit=True,
            width_overrides={"Part Disbursed Details": 60, "Remarks": 80},
            header_fill=MONTHLY_HEADER_FILL,
        )
    if profile.name == SALES_PROFILE.name:
        return SheetLayout(columns=columns, sheet_title="Sales")
    return SheetLayout(columns=columns, sheet_title="Builder Visits", alignment=profile.alignment)


def _sections(records: list[dict[str, Any]], profile: ReportProfile, options: ReportOptions) -> list[Section]:
    if profile.name == MASTER_PROFILE.name and _window(options) is None:
        part = [r for r in records if r.get("status") == PART_DISBURSED_STATUS]
        return [
            Section(PART_DISBURSED_SECTION, build_rows(part, profile)),
            Section(MASTER_SECTION, build_rows(records, profile)),
        ]
    return [Section(None, build_rows(records, profile))]


def _filename(profile: ReportProfile, options: ReportOptions) -> str:
    kind = REPORT_KINDS[profile.name]
    if profile.name == CUSTOMER_REPORT_PROFILE.name:
        window = _window(options)
        who = options.sales.replace(" ", "_") if options.sales else "All_Sales"
        if window:
            period = window[2].replace(" ", "_")
            return f"{kind}_{who}_{period}.xlsx"
        return artifact_name(kind, who)
    return artifact_name(kind, options.ref or options.sales)


def build_report(records: list[Any], profile: ReportProfile | str, options: Optional[ReportOptions] = None) -> ReportArtifact:
    """
    Produce a workbook for the records under the given profile.
    Date-windowed reports refuse to render an empty result; unwindowed exports of an empty set
    yield a header-only workbook.
    """
    options = options or ReportOptions()
    if isinstance(profile, str):
        profile = get_profile(profile)
    if options.fanout is not None:
        profile = profile.with_fanout(options.fanout)

    data = [r if isinstance(r, dict) else as_dict(r) for r in records]
    data = filter_records(data, options, profile)

    sections = _sections(data, profile, options)
    wb = render_workbook(_layout(profile, options), sections)
    filename = _filename(profile, options)
    row_count = sum(len(s.rows) for s in sections if s.title != PART_DISBURSED_SECTION)
    artifact = ReportArtifact(
        filename=filename,
        kind=REPORT_KINDS[profile.name],
        row_count=row_count,
        record_count=len(data),
    )
    if options.to_file:
        artifact.path = save_workbook(wb, options.export_dir or settings.export_dir, filename)
    else:
        artifact.content = workbook_bytes(wb)
    logger.info(
        "Report %s generated: records=%d rows=%d file=%s",
        profile.name, artifact.record_count, artifact.row_count, filename,
    )
    return artifact


def report_info(records: list[Any], options: ReportOptions) -> dict[str, Any]:
    """Record count, requested amount total and status breakdown for a window, without a file."""
    data = [r if isinstance(r, dict) else as_dict(r) for r in records]
    try:
        matched = filter_records(data, options)
    except NoMatchingRecords:
        matched = []
    window = _window(options)
    total = sum(normalize_number(r.get("amount")) for r in matched)
    statuses = Counter((r.get("status") or "No Status") for r in matched)
    return {
        "success": True,
        "record_count": len(matched),
        "total_amount": f"{total:.2f}",
        "date_column": options.date_field,
        "date_range": {
            "label": window[2],
            "start": window[0].date().isoformat(),
            "end": window[1].date().isoformat(),
        } if window else None,
        "status_breakdown": dict(statuses),
    }
