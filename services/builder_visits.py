from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from models import BuilderVisit
from services import approval as approval_sm
from services.errors import DuplicateSubmission, NotFound, ValidationError
from services.normalizer import normalize_for_storage
from services.record_store import RecordStore
from services.secrets import SecretStore
from services.submission_guard import SubmissionGuard

logger = logging.getLogger(__name__)

LEVEL2_STATUS = "approval.level2.status"

DATE_FIELDS = ("date_of_visit", "expected_completion_date")
AMOUNT_FIELDS = ("avg_agreement_value", "market_value")
SIZE_AMOUNT_FIELDS = (
    "basic_rate", "aec_auda", "sellded_amount", "regular_price", "down_payment", "maintenance",
    "stamp_duty", "registration_fee", "gst_amount", "total_amount",
)


def _has_value(item: dict[str, Any]) -> bool:
    return any(str(v).strip() for v in item.values() if v is not None)


def validate_visit(data: dict[str, Any]) -> dict[str, Any]:
    """
    Required names and at least one non-empty property size line; blank lines are dropped.
    Dates and amounts, line item amounts included, come back in storage form.
    """
    if not str(data.get("builder_name") or "").strip() or not str(data.get("project_name") or "").strip():
        raise ValidationError("Builder name and project name are required")
    sizes = [item for item in (data.get("property_sizes") or []) if _has_value(item)]
    if not sizes:
        raise ValidationError("At least one property size is required")
    values = normalize_for_storage(data, DATE_FIELDS, AMOUNT_FIELDS)
    values["property_sizes"] = [normalize_for_storage(item, number_fields=SIZE_AMOUNT_FIELDS) for item in sizes]
    return values


class BuilderVisitService:
    def __init__(self, session: AsyncSession, guard: SubmissionGuard, secrets: SecretStore):
        self.store = RecordStore(session, BuilderVisit)
        self.guard = guard
        self.secrets = secrets

    async def create(self, data: dict[str, Any]) -> BuilderVisit:
        values = validate_visit(data)
        key = self.guard.key_for(
            values.get("builder_name"), values.get("project_name"), values.get("office_person_number")
        )
        self.guard.check_and_remember(key)
        try:
            since = datetime.now(timezone.utc) - timedelta(seconds=self.guard.window_seconds)
            recent = await self.store.find_recent(
                since,
                builder_name=values.get("builder_name"),
                project_name=values.get("project_name"),
                office_person_number=values.get("office_person_number"),
            )
            if recent is not None:
                logger.info("Duplicate builder visit blocked by lookback: existing=%s", recent.id)
                raise DuplicateSubmission()
            record = await self.store.insert({
                **values,
                "id": f"bv-{uuid.uuid4().hex[:12]}",
                "approval": approval_sm.initial_approval(),
                "approval_status": approval_sm.STATUS_PENDING,
            })
        except DuplicateSubmission:
            raise
        except Exception:
            self.guard.forget(key)
            raise
        logger.info("Builder visit created: id=%s project=%s", record.id, record.project_name)
        return record

    async def list_active(self) -> list[BuilderVisit]:
        """Everything not yet fully approved, legacy records without approval included."""
        return await self.store.find(exclude={LEVEL2_STATUS: approval_sm.APPROVED})

    async def list_archive(self) -> list[BuilderVisit]:
        return await self.store.find(filters={LEVEL2_STATUS: approval_sm.APPROVED})

    async def get(self, visit_id: str) -> BuilderVisit:
        record = await self.store.find_by_id(visit_id)
        if record is None:
            raise NotFound("Builder visit not found")
        return record

    async def apply_edit(self, visit_id: str, data: dict[str, Any]) -> BuilderVisit:
        """Full edit; any previous approval is discarded."""
        values = validate_visit(data)
        await self.get(visit_id)
        outcome = approval_sm.reset_on_edit()
        record = await self.store.update_by_id(
            visit_id, {**values, "approval": outcome.approval, "approval_status": outcome.approval_status}
        )
        logger.info("Builder visit %s edited, approval reset", visit_id)
        return record

    async def approve(
        self, visit_id: str, level: int, password: Optional[str], by: Optional[str], comment: Optional[str] = None
    ) -> BuilderVisit:
        self.secrets.check_approval(password, level)
        record = await self.get(visit_id)
        # No lock between this read and the write below: two concurrent decisions on the
        # same visit are resolved by whichever write lands last.
        outcome = approval_sm.approve(
            record.approval, level, by or f"Level {level} approver", comment or "",
            previous_status=record.approval_status,
        )
        record = await self.store.update_by_id(
            visit_id, {"approval": outcome.approval, "approval_status": outcome.approval_status}
        )
        logger.info("Builder visit %s: level %s approved -> %s", visit_id, level, outcome.approval_status)
        return record

    async def reject(
        self, visit_id: str, level: int, password: Optional[str], by: Optional[str], comment: Optional[str]
    ) -> BuilderVisit:
        self.secrets.check_approval(password, level)
        record = await self.get(visit_id)
        outcome = approval_sm.reject(record.approval, level, by or f"Level {level} approver", comment)
        record = await self.store.update_by_id(
            visit_id, {"approval": outcome.approval, "approval_status": outcome.approval_status}
        )
        logger.info("Builder visit %s: level %s rejected -> %s", visit_id, level, outcome.approval_status)
        return record
