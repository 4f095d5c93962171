"""
Flattens Application and BuilderVisit records into spreadsheet rows.

Each report profile is an explicit column manifest. A profile may name one nested collection
(part_disbursed, property_sizes); its placeholder column is either filled with a merged text cell
or expanded into one row per nested item with the parent's scalar values repeated.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from services.approval import is_fully_approved
from services.normalizer import Choice, normalize_date, normalize_number
from services.record_store import as_dict

PART_DISBURSED_STATUS = "Part Disbursed"
MANIFEST_VERSION = 1


class Fanout(str, Enum):
    MERGE_INTO_CELL = "merge"
    PER_ITEM = "per_item"


@dataclass(frozen=True)
class Column:
    header: str
    key: str
    width: int = 25
    # text | date | number | currency
    kind: str = "text"


@dataclass(frozen=True)
class ReportProfile:
    name: str
    columns: tuple[Column, ...]
    derive: Callable[[dict[str, Any], "ReportProfile"], dict[str, Any]]
    nested_key: Optional[str] = None
    nested_columns: tuple[Column, ...] = ()
    nested_label: str = "Item"
    fanout: Fanout = Fanout.MERGE_INTO_CELL
    date_style: str = "display"
    # Data cell alignment applied by the renderer
    alignment: str = "left"
    # Records the profile reports on; None keeps every record
    include: Optional[Callable[[dict[str, Any]], bool]] = None
    version: int = MANIFEST_VERSION

    def with_fanout(self, fanout: Fanout) -> "ReportProfile":
        return replace(self, fanout=fanout)

    def select(self, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if self.include is None:
            return records
        return [r for r in records if self.include(r)]

    def layout(self) -> list[Column]:
        """Effective column list; the nested placeholder expands when fanning out per item."""
        if self.fanout != Fanout.PER_ITEM or not self.nested_key:
            return list(self.columns)
        out: list[Column] = []
        for column in self.columns:
            if column.key == self.nested_key:
                out.extend(self.nested_columns)
            else:
                out.append(column)
        return out


SPACER = Column("", "_spacer", width=4)


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def format_value(value: Any, kind: str, date_style: str = "display") -> Any:
    if kind == "date":
        return normalize_date(value, date_style)
    if kind in ("number", "currency"):
        return "" if _blank(value) else normalize_number(value)
    if value is None:
        return ""
    if isinstance(value, datetime):
        return normalize_date(value, date_style)
    if isinstance(value, list):
        return ", ".join(str(v) for v in value)
    if isinstance(value, dict):
        return str(value)
    return value


def merge_items(items: list[dict[str, Any]], columns: tuple[Column, ...], label: str = "Item", date_style: str = "display") -> str:
    """
    "Item 1: Size:2BHK, Floor:3 | Item 2: ..." with blank fields and empty items left out.
    Items keep their original position number even when an earlier one is skipped.
    """
    segments: list[str] = []
    for idx, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            continue
        parts = []
        for column in columns:
            if column.key == "item_no":
                continue
            value = format_value(item.get(column.key), column.kind, date_style)
            if not _blank(value):
                parts.append(f"{column.header}:{value}")
        if parts:
            segments.append(f"{label} {idx}: " + ", ".join(parts))
    return " | ".join(segments)


def _record_dict(record: Any) -> dict[str, Any]:
    if isinstance(record, dict):
        return record
    return as_dict(record)


def build_rows(records: list[Any], profile: ReportProfile) -> list[list[Any]]:
    """Rows aligned with profile.layout(); never raises on malformed values."""
    layout = profile.layout()
    rows: list[list[Any]] = []
    for index, record in enumerate(records, start=1):
        data = _record_dict(record)
        values = {"serial": index, **profile.derive(data, profile)}

        def parent_value(column: Column) -> Any:
            if column.key == "_spacer":
                return ""
            if column.key in values:
                return values[column.key]
            return format_value(data.get(column.key), column.kind, profile.date_style)

        items = data.get(profile.nested_key) if profile.nested_key else None
        items = [i for i in (items or []) if isinstance(i, dict)]

        if profile.fanout == Fanout.PER_ITEM and profile.nested_key:
            nested_keys = {c.key for c in profile.nested_columns}
            for item_no, item in enumerate(items or [None], start=1):
                row = []
                for column in layout:
                    if column.key in nested_keys:
                        if item is None:
                            row.append("")
                        elif column.key == "item_no":
                            row.append(item_no)
                        else:
                            row.append(format_value(item.get(column.key), column.kind, profile.date_style))
                    else:
                        row.append(parent_value(column))
                rows.append(row)
            continue

        if profile.nested_key:
            values[profile.nested_key] = merge_items(items, profile.nested_columns, profile.nested_label, profile.date_style)
        rows.append([parent_value(column) for column in layout])
    return rows


def expected_row_count(records: list[Any], profile: ReportProfile) -> int:
    if profile.fanout != Fanout.PER_ITEM or not profile.nested_key:
        return len(records)
    return sum(max(1, len(_record_dict(r).get(profile.nested_key) or [])) for r in records)


#
# --- Applications ---
#

CHOICE_FIELDS = {
    "code": "other_code",
    "product": "other_product",
    "bank": "other_bank",
    "source_channel": "other_source_channel",
    "category": "other_category",
}

# (label, field) in the order they appear in the merged remarks cell
REMARK_FIELDS = [
    ("Consulting", "consulting"),
    ("Payout", "payout"),
    ("Expense", "expense_amount"),
    ("Refund", "fees_refund_amount"),
    ("Remark", "remark"),
]


def remarks_summary(record: dict[str, Any], placeholder: Optional[str] = None, fields=REMARK_FIELDS) -> str:
    """ "Consulting: 5000 | Remark: urgent"; empty values are skipped unless a placeholder is given."""
    parts = []
    for label, key in fields:
        value = record.get(key)
        if _blank(value):
            if placeholder is None:
                continue
            value = placeholder
        parts.append(f"{label}: {value}")
    return " | ".join(parts)


def part_disbursed_totals(record: dict[str, Any]) -> tuple[Any, Any]:
    """(total, remaining) when status is Part Disbursed, otherwise ("", "")."""
    if record.get("status") != PART_DISBURSED_STATUS:
        return "", ""
    parts = record.get("part_disbursed") or []
    total = sum(normalize_number(p.get("amount")) for p in parts if isinstance(p, dict))
    remaining = normalize_number(record.get("sanction_amount")) - total
    return total, remaining


def _application_values(record: dict[str, Any], profile: ReportProfile) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, other_key in CHOICE_FIELDS.items():
        values[key] = Choice.parse(record.get(key), record.get(other_key)).value
    total, remaining = part_disbursed_totals(record)
    values["total_part_disbursed"] = total
    values["remaining_amount"] = remaining
    values["remarks_summary"] = remarks_summary(record)
    return values


def _customer_report_values(record: dict[str, Any], profile: ReportProfile) -> dict[str, Any]:
    values = _application_values(record, profile)
    values["remarks_summary"] = remarks_summary(
        record,
        placeholder="N/A",
        fields=[("Remark", "remark"), ("Consulting", "consulting"), ("Payout", "payout"),
                ("Expense", "expense_amount"), ("Fees Refund", "fees_refund_amount")],
    )
    return values


PART_DISBURSED_COLUMNS = (
    Column("Part No", "item_no", width=10),
    Column("Date", "date", width=14, kind="date"),
    Column("Amount", "amount", width=16, kind="number"),
)

LOGIN_COLUMNS = (
    Column("Code", "code", 14),
    Column("Name", "name"),
    Column("Mobile", "mobile", 16),
    Column("Email", "email"),
    Column("Product", "product"),
    Column("Req Loan Amount", "amount", 18),
    Column("Bank", "bank"),
    Column("Banker Name", "banker_name"),
    Column("Status", "status", 18),
    Column("Approval Status", "approval_status", 18),
    Column("Login Date", "login_date", 14, "date"),
    Column("Sales", "sales"),
    Column("Ref", "ref"),
    Column("Source Channel", "source_channel"),
    Column("Category", "category"),
    Column("Property Type", "property_type"),
    Column("Property Details", "property_details", 40),
    Column("PD Status", "pd_status", 16),
    Column("PD Remark", "pd_remark", 30),
    Column("PD Date", "pd_date", 14, "date"),
    Column("Rejected Remark", "rejected_remark", 30),
    Column("Withdraw Remark", "withdraw_remark", 30),
    Column("Hold Remark", "hold_remark", 30),
)

DISBURSED_COLUMNS = (
    Column("Sanction Date", "sanction_date", 14, "date"),
    Column("Sanction Amount", "sanction_amount", 18),
    Column("Disbursed Date", "disbursed_date", 14, "date"),
    Column("Disbursed Amount", "disbursed_amount", 18),
    Column("Loan Number", "loan_number"),
    Column("Insurance Option", "insurance_option", 16),
    Column("Insurance Amount", "insurance_amount", 18),
    Column("Subvention Option", "subvention_option", 16),
    Column("Subvention Amount", "subvention_amount", 18),
    Column("Part Disbursed Details", "part_disbursed", 60),
    Column("Total Part Disbursed Amount", "total_part_disbursed", 20, "currency"),
    Column("Remaining Amount", "remaining_amount", 20, "currency"),
    Column("Re-login Reason", "relogin_reason", 30),
)

MASTER_COLUMNS = LOGIN_COLUMNS + DISBURSED_COLUMNS + (
    Column("Created At", "created_at", 14, "date"),
    Column("Remarks Summary", "remarks_summary", 60),
)

SALES_COLUMNS = LOGIN_COLUMNS + DISBURSED_COLUMNS + (
    Column("ROI", "roi", 10),
    Column("Market Value", "mkt_value", 18),
    Column("Processing Fees", "processing_fees", 18),
    Column("Created At", "created_at", 14, "date"),
    Column("Consulting", "consulting", 18),
    Column("Payout", "payout", 18),
    Column("Expense Amount", "expense_amount", 18),
    Column("Fees Refund Amount", "fees_refund_amount", 18),
    Column("Remark", "remark", 40),
)

_CUSTOMER_LOGIN = tuple(c for c in LOGIN_COLUMNS if c.key not in ("approval_status",))
CUSTOMER_REPORT_COLUMNS = (
    (Column("S.No", "serial", 8),)
    + _CUSTOMER_LOGIN[:16]
    + (Column("Remarks", "remarks_summary", 80),)
    + _CUSTOMER_LOGIN[16:]
    + (SPACER, SPACER)
    + DISBURSED_COLUMNS
)

MASTER_PROFILE = ReportProfile(
    name="Master",
    columns=MASTER_COLUMNS,
    derive=_application_values,
    nested_key="part_disbursed",
    nested_columns=PART_DISBURSED_COLUMNS,
    nested_label="Part",
)

SALES_PROFILE = replace(MASTER_PROFILE, name="Sales", columns=SALES_COLUMNS)

CUSTOMER_REPORT_PROFILE = replace(
    MASTER_PROFILE,
    name="Customer_Report",
    columns=CUSTOMER_REPORT_COLUMNS,
    derive=_customer_report_values,
)


#
# --- Builder visits ---
#

PROPERTY_SIZE_COLUMNS = (
    Column("Item No", "item_no", 10),
    Column("Size", "size", 14),
    Column("Floor", "floor", 10),
    Column("Sqft", "sqft", 12),
    Column("Area", "area", 12),
    Column("Basic Rate", "basic_rate", 14),
    Column("AEC/AUDA", "aec_auda", 14),
    Column("Sellded Amount", "sellded_amount", 16),
    Column("Regular Price", "regular_price", 16),
    Column("Down Payment", "down_payment", 16),
    Column("Maintenance", "maintenance", 14),
    Column("Stamp Duty", "stamp_duty", 14),
    Column("Registration Fee", "registration_fee", 16),
    Column("GST Amount", "gst_amount", 14),
    Column("Total Amount", "total_amount", 16),
)


def _builder_visit_values(record: dict[str, Any], profile: ReportProfile) -> dict[str, Any]:
    executives = record.get("executives") or []
    usps = record.get("usps") or []
    values: dict[str, Any] = {
        "executives": ", ".join(
            f"{e.get('name', '')} ({e.get('number', '')})" for e in executives if isinstance(e, dict)
        ),
        "usps": ", ".join(str(u) for u in usps) if isinstance(usps, list) else str(usps),
        "approval_status": record.get("approval_status") or "",
    }
    approval = record.get("approval") or {}
    for level in ("level1", "level2"):
        state = approval.get(level) or {}
        values[f"{level}_status"] = state.get("status") or ""
        values[f"{level}_by"] = state.get("by") or ""
        values[f"{level}_at"] = normalize_date(state.get("at"), profile.date_style)
        values[f"{level}_comment"] = state.get("comment") or ""
    return values


BUILDER_VISIT_COLUMNS = (
    Column("Developer Group Name", "group_name"),
    Column("Project Name", "project_name"),
    Column("Developer Name", "builder_name"),
    Column("Developer Number", "builder_number", 16),
    Column("Location", "location"),
    Column("Office Person Name", "office_person_details"),
    Column("Office Person Number", "office_person_number", 16),
    Column("Date Of Visit", "date_of_visit", 14, "date"),
    Column("Business Type", "business_type"),
    Column("Person Met", "person_met"),
    Column("Executives", "executives", 40),
    Column("Loan Account Number", "loan_account_number"),
    Column("Stage Of Construction", "stage_of_construction"),
    Column("Development Type", "development_type"),
    Column("Area Type", "area_type"),
    Column("Total Units / Blocks", "total_units_blocks"),
    Column("Total Blocks", "total_blocks"),
    Column("Property Sizes", "property_sizes", 60),
    Column("Expected Completion", "expected_completion_date", 14, "date"),
    Column("Negotiable", "negotiable"),
    Column("Financing Requirements", "financing_requirements"),
    Column("Financing Details", "financing_details", 40),
    Column("Resident Type", "resident_type"),
    Column("Avg Agreement Value", "avg_agreement_value"),
    Column("Market Value", "market_value"),
    Column("Nearby Projects", "nearby_projects", 40),
    Column("Surrounding Community", "surrounding_community", 40),
    Column("Enquiry Type", "enquiry_type"),
    Column("Units For Sale", "units_for_sale"),
    Column("Time Limit (Months)", "time_limit_months"),
    Column("Remark", "remark", 40),
    Column("Payout", "payout"),
    Column("Manager", "manager"),
    Column("Approval Status", "approval_status"),
    Column("Level 1 Status", "level1_status"),
    Column("Level 1 By", "level1_by"),
    Column("Level 1 At", "level1_at", 14),
    Column("Level 1 Comment", "level1_comment", 40),
    Column("Level 2 Status", "level2_status"),
    Column("Level 2 By", "level2_by"),
    Column("Level 2 At", "level2_at", 14),
    Column("Level 2 Comment", "level2_comment", 40),
    Column("USPs", "usps", 40),
    Column("Total Amenities", "total_amenities"),
    Column("Allotted Car Parking", "alloted_car_parking"),
    Column("Clear Floor Height", "clear_floor_height"),
    Column("Retail Floor Height", "clear_floor_height_retail"),
    Column("Flats Floor Height", "clear_floor_height_flats"),
    Column("Offices Floor Height", "clear_floor_height_offices"),
)

BUILDER_VISIT_FULL_PROFILE = ReportProfile(
    name="BuilderVisitFull",
    columns=BUILDER_VISIT_COLUMNS,
    derive=_builder_visit_values,
    nested_key="property_sizes",
    nested_columns=PROPERTY_SIZE_COLUMNS,
    fanout=Fanout.PER_ITEM,
    date_style="iso",
)


def is_fully_approved_visit(record: dict[str, Any]) -> bool:
    return is_fully_approved(record.get("approval"))


BUILDER_VISIT_APPROVED_PROFILE = replace(
    BUILDER_VISIT_FULL_PROFILE, name="BuilderVisitApprovedOnly", include=is_fully_approved_visit
)

PROFILES: dict[str, ReportProfile] = {
    p.name: p
    for p in (
        MASTER_PROFILE,
        SALES_PROFILE,
        CUSTOMER_REPORT_PROFILE,
        BUILDER_VISIT_FULL_PROFILE,
        BUILDER_VISIT_APPROVED_PROFILE,
    )
}
