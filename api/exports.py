"""
Password-gated spreadsheet downloads.

File-backed exports are written to the export directory and removed once the response has been
sent; the monthly customer report is streamed from memory.
"""
import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.background import BackgroundTask

from api.deps import get_secrets
from database import get_db
from models import Application, BuilderVisit
from services.record_store import RecordStore
from services.report_rows import (
    BUILDER_VISIT_APPROVED_PROFILE,
    BUILDER_VISIT_FULL_PROFILE,
    CUSTOMER_REPORT_PROFILE,
    MASTER_PROFILE,
    SALES_PROFILE,
    Fanout,
)
from services.reports import ReportArtifact, ReportOptions, build_report, report_info
from services.secrets import ALL_IDENTITY, SecretStore
from services.spreadsheet import XLSX_MEDIA_TYPE, custom_range, quarter_range

logger = logging.getLogger(__name__)

router = APIRouter(tags=["exports"])


def _identity(ref: Optional[str]) -> Optional[str]:
    if not ref or not ref.strip() or ref == ALL_IDENTITY:
        return None
    return ref.strip()


async def _applications(db: AsyncSession, sales: Optional[str] = None) -> list[Application]:
    filters = {"sales": sales} if sales else None
    return await RecordStore(db, Application).find(filters=filters, order_by="created_at")


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove export %s: %s", path, e)


def _download(artifact: ReportArtifact) -> FileResponse:
    return FileResponse(
        artifact.path,
        media_type=XLSX_MEDIA_TYPE,
        filename=artifact.filename,
        background=BackgroundTask(_remove, artifact.path),
    )


def _stream(artifact: ReportArtifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


def _quarter_window(quarter, year) -> tuple:
    start, end = quarter_range(quarter, year)
    return start, end, f"Q{int(quarter)} {int(year)}"


def _custom_window(start_date, end_date) -> tuple:
    start, end = custom_range(start_date, end_date)
    return start, end, f"{start_date} to {end_date}"


@router.get("/api/export/excel")
async def export_master(
    password: Optional[str] = None,
    ref: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    """Master workbook for everyone ("All") or a single sales identity."""
    sales = _identity(ref)
    secrets.check_download(sales, password)
    apps = await _applications(db, sales)
    artifact = build_report(apps, MASTER_PROFILE, ReportOptions(to_file=True, ref=sales or ALL_IDENTITY))
    return _download(artifact)


@router.get("/api/export/sales")
async def export_sales(
    password: Optional[str] = None,
    sales: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    identity = _identity(sales)
    secrets.check_download(identity, password)
    apps = await _applications(db, identity)
    artifact = build_report(apps, SALES_PROFILE, ReportOptions(to_file=True, ref=identity or ALL_IDENTITY))
    return _download(artifact)


@router.get("/api/export/monthly")
async def export_monthly(
    month: Optional[str] = None,
    sales: Optional[str] = None,
    password: Optional[str] = None,
    date_column: str = Query("loginDate", alias="dateColumn"),
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    """Customer report for one month, filtered on the chosen date column; streamed, nothing kept on disk."""
    identity = _identity(sales)
    secrets.check_download(identity, password)
    apps = await _applications(db, identity)
    options = ReportOptions(month=(month or "").strip(), sales=identity, date_field=date_column)
    return _stream(build_report(apps, CUSTOMER_REPORT_PROFILE, options))


@router.get("/api/export/quarterly")
async def export_quarterly(
    quarter: Optional[str] = None,
    year: Optional[str] = None,
    password: Optional[str] = None,
    date_column: str = Query("loginDate", alias="dateColumn"),
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    secrets.check_download(None, password)
    options = ReportOptions(window=_quarter_window(quarter, year), date_field=date_column, to_file=True)
    artifact = build_report(await _applications(db), CUSTOMER_REPORT_PROFILE, options)
    return _download(artifact)


@router.get("/api/export/custom-date")
async def export_custom_date(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    password: Optional[str] = None,
    date_column: str = Query("loginDate", alias="dateColumn"),
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    secrets.check_download(None, password)
    options = ReportOptions(window=_custom_window(start_date, end_date), date_field=date_column, to_file=True)
    artifact = build_report(await _applications(db), CUSTOMER_REPORT_PROFILE, options)
    return _download(artifact)


@router.get("/api/export/report-info")
async def export_report_info(
    password: Optional[str] = None,
    sales: Optional[str] = None,
    month: Optional[str] = None,
    quarter: Optional[str] = None,
    year: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    date_column: str = Query("loginDate", alias="dateColumn"),
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    """Counts and totals for the window a download would cover, without producing a file."""
    identity = _identity(sales)
    secrets.check_download(identity, password)
    options = ReportOptions(sales=identity, date_field=date_column)
    if month:
        options.month = month.strip()
    elif quarter or year:
        options.window = _quarter_window(quarter, year)
    elif start_date or end_date:
        options.window = _custom_window(start_date, end_date)
    info = report_info(await _applications(db, identity), options)
    return {
        "success": info["success"],
        "recordCount": info["record_count"],
        "totalAmount": info["total_amount"],
        "dateColumn": info["date_column"],
        "dateRange": info["date_range"],
        "statusBreakdown": info["status_breakdown"],
    }


@router.get("/api/builder-visits/export")
async def export_builder_visits(
    password: Optional[str] = None,
    scope: str = "approved",
    fanout: Optional[Fanout] = None,
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
):
    """Fully approved visits by default; scope=all exports every visit. One row per property size."""
    secrets.check_download(None, password)
    store = RecordStore(db, BuilderVisit)
    if scope == "all":
        visits, profile = await store.find(order_by="created_at"), BUILDER_VISIT_FULL_PROFILE
    else:
        visits = await store.find(filters={"approval.level2.status": "Approved"}, order_by="created_at")
        profile = BUILDER_VISIT_APPROVED_PROFILE
    artifact = build_report(visits, profile, ReportOptions(to_file=True, fanout=fanout, ref=scope.capitalize()))
    return _download(artifact)
