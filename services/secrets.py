"""
Shared-secret lookup and comparison for approval and download gates.
Secrets come from an explicit identity -> secret table loaded with the settings.
"""
from __future__ import annotations

import hmac
from dataclasses import dataclass, field
from typing import Optional

from config import Settings
from services.errors import SecretNotConfigured, Unauthorized

ALL_IDENTITY = "All"


def _normalize_identity(identity: str) -> str:
    return " ".join(identity.split()).lower()


@dataclass
class SecretStore:
    download_password: Optional[str] = None
    approval_password: Optional[str] = None
    level_passwords: dict[int, Optional[str]] = field(default_factory=dict)
    sales_passwords: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecretStore":
        return cls(
            download_password=settings.download_password,
            approval_password=settings.approval_password,
            level_passwords={
                1: settings.level1_approval_password,
                2: settings.level2_approval_password,
            },
            sales_passwords={_normalize_identity(k): v for k, v in settings.sales_passwords.items()},
        )

    def download_secret(self, identity: Optional[str] = None) -> str:
        """Master secret for all-records exports, otherwise the secret of the given sales identity."""
        if not identity or identity == ALL_IDENTITY:
            if not self.download_password:
                raise SecretNotConfigured("Master download password not configured. Please contact administrator.")
            return self.download_password
        secret = self.sales_passwords.get(_normalize_identity(identity))
        if not secret:
            raise SecretNotConfigured(f'No password configured for "{identity}". Please contact administrator.')
        return secret

    def approval_secret(self, level: Optional[int] = None) -> str:
        secret = self.level_passwords.get(level) if level else None
        secret = secret or self.approval_password
        if not secret:
            raise SecretNotConfigured("Approval password not configured. Please contact administrator.")
        return secret

    @staticmethod
    def verify(expected: str, supplied: Optional[str]) -> None:
        """Exact, case-sensitive match; raises Unauthorized without saying which check failed."""
        if not supplied or not hmac.compare_digest(expected.encode(), supplied.encode()):
            raise Unauthorized()

    def check_download(self, identity: Optional[str], supplied: Optional[str]) -> None:
        self.verify(self.download_secret(identity), supplied)

    def check_approval(self, supplied: Optional[str], level: Optional[int] = None) -> None:
        self.verify(self.approval_secret(level), supplied)
