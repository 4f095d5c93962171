"""
Email notifications on submission and on full (level 2) approval.
Delivery is best effort: failures are logged and never reach the request that triggered them.
"""
from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Optional

from config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Notifier:
    """Default sink: records what would have been sent."""

    async def send(self, subject: str, body: str, to: list[str]) -> bool:
        logger.info("Notification skipped (email not configured): %s", subject)
        return False


class EmailNotifier(Notifier):
    def __init__(self, config: Settings):
        self.config = config

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=15) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            if self.config.smtp_username:
                smtp.login(self.config.smtp_username, self.config.smtp_password)
            smtp.send_message(message)

    async def send(self, subject: str, body: str, to: list[str]) -> bool:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.config.mail_from
        message["To"] = ", ".join(to)
        message.set_content(body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email sending failed: subject=%r to=%s error=%s", subject, to, e)
            return False
        logger.info("Email sent: subject=%r to=%s", subject, to)
        return True


def get_notifier(config: Optional[Settings] = None) -> Notifier:
    config = config or default_settings
    if config.notifications_enabled:
        return EmailNotifier(config)
    return Notifier()


def _lines(pairs: list[tuple[str, Any]]) -> str:
    return "\n".join(f"{label}: {value or 'N/A'}" for label, value in pairs)


def builder_visit_submitted_message(visit: dict[str, Any]) -> tuple[str, str]:
    subject = f"New Builder Visit Submitted - {visit.get('project_name') or 'N/A'}"
    executives = visit.get("executives") or []
    body = _lines([
        ("Project Name", visit.get("project_name")),
        ("Builder Name", visit.get("builder_name")),
        ("Group Name", visit.get("group_name")),
        ("Location", visit.get("location")),
        ("Development Type", visit.get("development_type")),
        ("Office Person", visit.get("office_person_details")),
        ("Contact Number", visit.get("office_person_number")),
    ])
    if executives:
        body += "\nExecutives:\n" + "\n".join(f"  - {e.get('name')} - {e.get('number')}" for e in executives)
    body += "\n\nAction Required: This submission requires Level 1 approval."
    return subject, body


def application_submitted_message(app: dict[str, Any]) -> tuple[str, str]:
    subject = f"New Application Submitted - {app.get('name') or 'N/A'}"
    body = _lines([
        ("Name", app.get("name")),
        ("Mobile", app.get("mobile")),
        ("Email", app.get("email")),
        ("Product", app.get("product")),
        ("Amount", app.get("amount")),
        ("Bank", app.get("bank")),
        ("Sales", app.get("sales")),
        ("Status", app.get("status")),
    ])
    return subject, body


def builder_visit_approved_message(visit: dict[str, Any]) -> tuple[str, str]:
    subject = f"Form Fully Approved - Level 2 Completed - {visit.get('project_name') or 'N/A'}"
    approval = visit.get("approval") or {}
    level1 = approval.get("level1") or {}
    level2 = approval.get("level2") or {}
    body = _lines([
        ("Project Name", visit.get("project_name")),
        ("Builder Name", visit.get("builder_name")),
        ("Level 1 Approved By", level1.get("by")),
        ("Level 1 Approved At", level1.get("at")),
        ("Level 2 Approved By", level2.get("by")),
        ("Level 2 Approved At", level2.get("at")),
    ])
    if level2.get("comment"):
        body += f"\nComment: {level2['comment']}"
    return subject, body


async def notify(notifier: Notifier, message: tuple[str, str], to: list[str]) -> None:
    """Fire-and-forget wrapper used from background tasks."""
    if not to:
        return
    subject, body = message
    try:
        await notifier.send(subject, body, to)
    except Exception:
        logger.exception("Notification failed: %s", subject)
