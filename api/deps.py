"""Request-scoped services and the process-wide collaborators they share."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import get_db
from services.applications import ApplicationService
from services.builder_visits import BuilderVisitService
from services.notifications import Notifier, get_notifier
from services.secrets import SecretStore
from services.submission_guard import SubmissionGuard

application_guard = SubmissionGuard(settings.duplicate_window_seconds)
builder_visit_guard = SubmissionGuard(settings.duplicate_window_seconds)
secret_store = SecretStore.from_settings(settings)
notifier = get_notifier(settings)


def get_secrets() -> SecretStore:
    return secret_store


def get_mailer() -> Notifier:
    return notifier


def get_application_service(
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
) -> ApplicationService:
    return ApplicationService(db, application_guard, secrets, settings)


def get_builder_visit_service(
    db: AsyncSession = Depends(get_db),
    secrets: SecretStore = Depends(get_secrets),
) -> BuilderVisitService:
    return BuilderVisitService(db, builder_visit_guard, secrets)
