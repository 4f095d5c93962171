from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, settings as default_settings
from models import Application
from services.errors import DuplicateSubmission, NotFound, ValidationError
from services.normalizer import normalize_for_storage
from services.record_store import RecordStore
from services.secrets import SecretStore
from services.submission_guard import SubmissionGuard

logger = logging.getLogger(__name__)

APPROVED_BY_SB = "Approved by SB"
REJECTED_BY_SB = "Rejected by SB"
RESET_STATUS = "Pending"

DATE_FIELDS = ("login_date", "sanction_date", "disbursed_date", "pd_date")
AMOUNT_FIELDS = (
    "amount", "sanction_amount", "disbursed_amount", "insurance_amount", "subvention_amount",
    "expense_amount", "fees_refund_amount", "mkt_value", "processing_fees",
)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def normalize_application(data: dict[str, Any]) -> dict[str, Any]:
    """Dates to YYYY-MM-DD and amounts without thousands separators, part disbursements included."""
    values = normalize_for_storage(data, DATE_FIELDS, AMOUNT_FIELDS)
    if isinstance(values.get("part_disbursed"), list):
        values["part_disbursed"] = [
            normalize_for_storage(part, ("date",), ("amount",)) if isinstance(part, dict) else part
            for part in values["part_disbursed"]
        ]
    return values


def changed_fields(stored: Application, updates: dict[str, Any], watched: list[str]) -> list[str]:
    """Watched fields present in `updates` whose value differs from the stored one."""
    return [
        name for name in watched
        if name in updates and _text(updates[name]) != _text(getattr(stored, name, None))
    ]


class ApplicationService:
    def __init__(
        self,
        session: AsyncSession,
        guard: SubmissionGuard,
        secrets: SecretStore,
        config: Optional[Settings] = None,
    ):
        self.store = RecordStore(session, Application)
        self.guard = guard
        self.secrets = secrets
        self.config = config or default_settings

    async def create(self, data: dict[str, Any]) -> Application:
        name = _text(data.get("name"))
        mobile = _text(data.get("mobile"))
        if not name or not mobile:
            raise ValidationError("Name and mobile are required")
        email = _text(data.get("email"))
        data = normalize_application(data)

        key = self.guard.key_for(name, mobile, email)
        self.guard.check_and_remember(key)
        try:
            since = datetime.now(timezone.utc) - timedelta(seconds=self.guard.window_seconds)
            identity = {"name": name, "mobile": mobile}
            if email:
                identity["email"] = data.get("email")
            recent = await self.store.find_recent(since, **identity)
            if recent is not None:
                logger.info("Duplicate application blocked by lookback: existing=%s", recent.id)
                raise DuplicateSubmission()
            record = await self.store.insert({
                **data,
                "id": f"app-{uuid.uuid4().hex[:12]}",
                "name": name,
                "mobile": mobile,
                "approval_status": "",
            })
        except DuplicateSubmission:
            raise
        except Exception:
            self.guard.forget(key)
            raise
        logger.info("Application created: id=%s sales=%s", record.id, record.sales)
        return record

    async def list(self, sales: Optional[str] = None) -> list[Application]:
        filters = {"sales": sales} if sales else None
        return await self.store.find(filters=filters)

    async def get(self, application_id: str) -> Application:
        record = await self.store.find_by_id(application_id)
        if record is None:
            raise NotFound("Application not found")
        return record

    async def apply_edit(self, application_id: str, updates: dict[str, Any]) -> Application:
        """
        Partial update with selective reset: when any of the configured important fields
        changes, the previous approval no longer holds and the reset policy is applied.
        """
        record = await self.get(application_id)
        values = normalize_application(updates)
        changed = changed_fields(record, values, self.config.important_fields)
        if changed:
            policy = self.config.application_reset_policy
            if policy == "reset_status":
                # An explicit status change in the same edit wins over the reset.
                if "status" not in changed:
                    values["status"] = RESET_STATUS
            else:
                values["approval_status"] = ""
            logger.info(
                "Application %s: important fields changed %s, applying %s", application_id, changed, policy
            )
        return await self.store.update_by_id(application_id, values)

    async def _decide(self, application_id: str, password: Optional[str], outcome: str) -> Application:
        self.secrets.check_approval(password)
        record = await self.store.update_by_id(application_id, {"approval_status": outcome})
        if record is None:
            raise NotFound("Application not found")
        logger.info("Application %s: %s", application_id, outcome)
        return record

    async def approve(self, application_id: str, password: Optional[str]) -> Application:
        return await self._decide(application_id, password, APPROVED_BY_SB)

    async def reject(self, application_id: str, password: Optional[str]) -> Application:
        return await self._decide(application_id, password, REJECTED_BY_SB)
