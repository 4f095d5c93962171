"""
Secret store: identity lookup, per-level fallback, exact comparison.
Run from project root: python -m pytest tests/test_secrets.py -v
"""
import unittest

from config import Settings
from services.errors import SecretNotConfigured, Unauthorized
from services.secrets import SecretStore


def _store(**overrides):
    values = {
        "download_password": "master",
        "approval_password": "approve",
        "level_passwords": {1: "one", 2: None},
        "sales_passwords": {"ravi kumar": "ravi"},
    }
    values.update(overrides)
    return SecretStore(**values)


class TestSecretStore(unittest.TestCase):
    def test_download_identities(self):
        store = _store()
        self.assertEqual(store.download_secret(None), "master")
        self.assertEqual(store.download_secret("All"), "master")
        self.assertEqual(store.download_secret("Ravi Kumar"), "ravi")
        self.assertEqual(store.download_secret("  RAVI   kumar "), "ravi")

    def test_unknown_identity(self):
        with self.assertRaises(SecretNotConfigured) as ctx:
            _store().download_secret("Meena")
        self.assertIn('"Meena"', ctx.exception.message)
        with self.assertRaises(SecretNotConfigured):
            _store(download_password=None).download_secret("All")

    def test_level_fallback(self):
        store = _store()
        self.assertEqual(store.approval_secret(1), "one")
        self.assertEqual(store.approval_secret(2), "approve")
        self.assertEqual(store.approval_secret(), "approve")

    def test_verify_is_exact(self):
        store = _store()
        store.check_download("Ravi Kumar", "ravi")
        for supplied in ("Ravi", "ravi ", "", None, "master"):
            with self.assertRaises(Unauthorized):
                store.check_download("Ravi Kumar", supplied)
        with self.assertRaises(Unauthorized) as ctx:
            store.check_approval("one", 2)
        self.assertEqual(ctx.exception.message, "Unauthorized: Invalid password")

    def test_from_settings(self):
        config = Settings(
            download_password="m",
            approval_password="a",
            level2_approval_password="two",
            sales_passwords={"Ravi  Kumar": "r"},
        )
        store = SecretStore.from_settings(config)
        self.assertEqual(store.download_secret("ravi kumar"), "r")
        self.assertEqual(store.approval_secret(2), "two")


if __name__ == "__main__":
    unittest.main()
