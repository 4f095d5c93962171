"""
Test environment: in-memory SQLite and fixed shared secrets.
Set before any project module imports config.settings.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DOWNLOAD_PASSWORD"] = "master-secret"
os.environ["APPROVAL_PASSWORD"] = "approve-secret"
os.environ["LEVEL1_APPROVAL_PASSWORD"] = "level1-secret"
os.environ["LEVEL2_APPROVAL_PASSWORD"] = "level2-secret"
os.environ["SALES_PASSWORDS"] = '{"Ravi Kumar": "ravi-secret"}'
os.environ["EXPORT_DIR"] = tempfile.mkdtemp(prefix="loan-tracker-exports-")
os.environ["SMTP_HOST"] = ""
