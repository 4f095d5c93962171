from typing import Literal, Optional

from pydantic import PrivateAttr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Loan Tracker API"
    debug: bool = False

    database_url: str = "sqlite+aiosqlite:///./loan_tracker.db"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    # Transient directory for file-backed exports; callers delete after download.
    export_dir: str = "exports"

    # Shared secrets. Compared verbatim, never hashed.
    download_password: Optional[str] = None
    approval_password: Optional[str] = None
    level1_approval_password: Optional[str] = None
    level2_approval_password: Optional[str] = None
    # Sales identity -> download secret, e.g. SALES_PASSWORDS='{"Ravi Kumar": "..."}'
    sales_passwords: dict[str, str] = {}

    application_reset_policy: Literal["clear_approval_status", "reset_status"] = "clear_approval_status"
    important_fields: list[str] = [
        "remark",
        "consulting",
        "payout",
        "expense_amount",
        "fees_refund_amount",
        "status",
    ]

    duplicate_window_seconds: float = 5.0

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_from: str = "Builder Visit System <no-reply@localhost>"
    admin_emails: list[str] = []

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    _is_sqlite: bool = PrivateAttr(default=False)
    _is_postgresql: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: object) -> None:
        _scheme = self.database_url.split(":")[0].lower()
        object.__setattr__(self, "_is_sqlite", "sqlite" in _scheme)
        object.__setattr__(self, "_is_postgresql", "postgresql" in _scheme)

    @property
    def is_sqlite(self) -> bool:
        return self._is_sqlite

    @property
    def is_postgresql(self) -> bool:
        return self._is_postgresql

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.smtp_host and self.admin_emails)


settings = Settings()
