from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from api.deps import get_application_service, get_mailer
from config import settings
from models import Application
from schemas.application import ApplicationCreate, ApplicationUpdate, DecisionRequest
from services.applications import ApplicationService
from services.notifications import Notifier, application_submitted_message, notify
from services.record_store import as_dict
from utils.case import dict_keys_to_camel

router = APIRouter(prefix="/api/applications", tags=["applications"])


def _app_to_response(app: Application) -> dict[str, Any]:
    return dict_keys_to_camel(as_dict(app))


@router.post("", status_code=201)
async def create_application(
    body: ApplicationCreate,
    background_tasks: BackgroundTasks,
    service: ApplicationService = Depends(get_application_service),
    mailer: Notifier = Depends(get_mailer),
):
    app = await service.create(body.model_dump())
    background_tasks.add_task(
        notify, mailer, application_submitted_message(as_dict(app)), settings.admin_emails
    )
    return {"success": True, "data": _app_to_response(app)}


@router.get("")
async def list_applications(
    sales: Optional[str] = None,
    service: ApplicationService = Depends(get_application_service),
):
    apps = await service.list(sales=sales)
    return [_app_to_response(a) for a in apps]


@router.get("/{application_id}")
async def get_application(application_id: str, service: ApplicationService = Depends(get_application_service)):
    return _app_to_response(await service.get(application_id))


@router.patch("/{application_id}")
async def update_application(
    application_id: str,
    body: ApplicationUpdate,
    service: ApplicationService = Depends(get_application_service),
):
    """Partial update; changing an important field clears the previous approval decision."""
    app = await service.apply_edit(application_id, body.model_dump(exclude_unset=True))
    return _app_to_response(app)


@router.patch("/{application_id}/approve")
async def approve_application(
    application_id: str,
    body: DecisionRequest,
    service: ApplicationService = Depends(get_application_service),
):
    app = await service.approve(application_id, body.password)
    return {"message": "Approved successfully", "data": _app_to_response(app)}


@router.patch("/{application_id}/reject")
async def reject_application(
    application_id: str,
    body: DecisionRequest,
    service: ApplicationService = Depends(get_application_service),
):
    app = await service.reject(application_id, body.password)
    return {"message": "Rejected successfully", "data": _app_to_response(app)}
