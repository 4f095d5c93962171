from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends

from api.deps import get_builder_visit_service, get_mailer
from config import settings
from models import BuilderVisit
from schemas.builder_visit import ApprovalAction, BuilderVisitCreate, BuilderVisitUpdate
from services.approval import is_fully_approved
from services.builder_visits import BuilderVisitService
from services.notifications import (
    Notifier,
    builder_visit_approved_message,
    builder_visit_submitted_message,
    notify,
)
from services.record_store import as_dict
from utils.case import dict_keys_to_camel

router = APIRouter(prefix="/api/builder-visits", tags=["builder-visits"])


def _visit_to_response(visit: BuilderVisit) -> dict[str, Any]:
    return dict_keys_to_camel(as_dict(visit))


@router.post("", status_code=201)
async def create_builder_visit(
    body: BuilderVisitCreate,
    background_tasks: BackgroundTasks,
    service: BuilderVisitService = Depends(get_builder_visit_service),
    mailer: Notifier = Depends(get_mailer),
):
    visit = await service.create(body.model_dump())
    background_tasks.add_task(
        notify, mailer, builder_visit_submitted_message(as_dict(visit)), settings.admin_emails
    )
    return {"success": True, "data": _visit_to_response(visit)}


@router.get("")
async def list_builder_visits(service: BuilderVisitService = Depends(get_builder_visit_service)):
    """Visits still in the approval pipeline (level 2 not approved)."""
    return [_visit_to_response(v) for v in await service.list_active()]


@router.get("/approved")
async def list_approved_builder_visits(service: BuilderVisitService = Depends(get_builder_visit_service)):
    return [_visit_to_response(v) for v in await service.list_archive()]


@router.get("/{visit_id}")
async def get_builder_visit(visit_id: str, service: BuilderVisitService = Depends(get_builder_visit_service)):
    return _visit_to_response(await service.get(visit_id))


@router.put("/{visit_id}")
async def update_builder_visit(
    visit_id: str,
    body: BuilderVisitUpdate,
    service: BuilderVisitService = Depends(get_builder_visit_service),
):
    visit = await service.apply_edit(visit_id, body.model_dump())
    return {"success": True, "message": "Form updated; approval reset", "data": _visit_to_response(visit)}


@router.patch("/{visit_id}/approve")
async def approve_builder_visit(
    visit_id: str,
    body: ApprovalAction,
    background_tasks: BackgroundTasks,
    service: BuilderVisitService = Depends(get_builder_visit_service),
    mailer: Notifier = Depends(get_mailer),
):
    visit = await service.approve(visit_id, body.level, body.password, body.by, body.comment)
    if body.level == 2 and is_fully_approved(visit.approval):
        background_tasks.add_task(
            notify, mailer, builder_visit_approved_message(as_dict(visit)), settings.admin_emails
        )
    return {"success": True, "message": f"Level {body.level} approved", "data": _visit_to_response(visit)}


@router.patch("/{visit_id}/reject")
async def reject_builder_visit(
    visit_id: str,
    body: ApprovalAction,
    service: BuilderVisitService = Depends(get_builder_visit_service),
):
    visit = await service.reject(visit_id, body.level, body.password, body.by, body.comment)
    return {"success": True, "message": f"Level {body.level} rejected", "data": _visit_to_response(visit)}
