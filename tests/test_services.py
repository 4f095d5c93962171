"""
Application and builder visit services against a private in-memory database.
Run from project root: python -m pytest tests/test_services.py -v
"""
import unittest
from unittest.mock import AsyncMock, patch

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from config import Settings
from database import Base
from services.applications import APPROVED_BY_SB, ApplicationService, changed_fields
from services.builder_visits import BuilderVisitService
from services.errors import (
    DuplicateSubmission,
    InvalidComment,
    NotFound,
    PrecursorNotApproved,
    Unauthorized,
    ValidationError,
)
from services.secrets import SecretStore
from services.submission_guard import SubmissionGuard

SECRETS = SecretStore(
    download_password="master",
    approval_password="approve",
    level_passwords={1: "one", 2: "two"},
)


def _visit(**overrides):
    data = {
        "builder_name": "Shree Developers",
        "project_name": "Skyline",
        "office_person_number": "9876543210",
        "property_sizes": [{"size": "2BHK", "floor": "3"}],
        "executives": [{"name": "Kiran", "number": "9123456780"}],
    }
    data.update(overrides)
    return data


class DatabaseTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = create_async_engine(
            "sqlite+aiosqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self.session = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()


class TestApplicationService(DatabaseTestCase):
    def service(self, **config):
        settings = Settings(**config)
        return ApplicationService(self.session, SubmissionGuard(5), SECRETS, settings)

    async def test_create_requires_name_and_mobile(self):
        service = self.service()
        for data in ({"name": "Asha"}, {"mobile": "9876543210"}, {"name": "  ", "mobile": "9876543210"}):
            with self.assertRaises(ValidationError):
                await service.create(data)

    async def test_duplicate_within_window(self):
        service = self.service()
        app = await service.create({"name": "Asha", "mobile": "9876543210", "email": "asha@example.com"})
        self.assertTrue(app.id.startswith("app-"))
        self.assertEqual(app.approval_status, "")
        with self.assertRaises(DuplicateSubmission):
            await service.create({"name": "Asha", "mobile": "9876543210", "email": "asha@example.com"})

    async def test_duplicate_caught_by_lookback(self):
        """A fresh guard (another worker) still sees the recent row."""
        await self.service().create({"name": "Asha", "mobile": "9876543210"})
        with self.assertRaises(DuplicateSubmission):
            await self.service().create({"name": "Asha", "mobile": "9876543210"})

    async def test_duplicate_from_lookback_keeps_key(self):
        await self.service().create({"name": "Bala", "mobile": "9000000000"})
        guard = SubmissionGuard(5)
        with self.assertRaises(DuplicateSubmission):
            await ApplicationService(self.session, guard, SECRETS, Settings()).create(
                {"name": "Bala", "mobile": "9000000000"}
            )
        self.assertEqual(len(guard.store), 1)

    async def test_failed_create_releases_key(self):
        guard = SubmissionGuard(5)
        service = ApplicationService(self.session, guard, SECRETS, Settings())
        with patch.object(service.store, "insert", AsyncMock(side_effect=RuntimeError("disk full"))):
            with self.assertRaises(RuntimeError):
                await service.create({"name": "Bala", "mobile": "9000000000"})
        self.assertEqual(len(guard.store), 0)

    async def test_create_normalizes_dates_and_amounts(self):
        app = await self.service().create({
            "name": "Gita",
            "mobile": "9000000002",
            "login_date": "5-1-2026",
            "amount": "1,00,000",
            "sanction_amount": 250000,
            "payout": "2%",
            "disbursed_date": "not yet",
            "part_disbursed": [{"date": "20-01-2026", "amount": "50,000"}],
        })
        self.assertEqual(app.login_date, "2026-01-05")
        self.assertEqual(app.amount, "100000")
        self.assertEqual(app.sanction_amount, "250000")
        self.assertEqual(app.payout, "2%")
        self.assertEqual(app.disbursed_date, "not yet")
        self.assertEqual(app.part_disbursed, [{"date": "2026-01-20", "amount": "50000"}])

    async def test_edit_normalizes_before_comparing(self):
        service = self.service()
        app = await service.create({"name": "Hari", "mobile": "9000000003", "expense_amount": "2000"})
        await service.approve(app.id, "approve")
        updated = await service.apply_edit(app.id, {"expense_amount": "2,000", "sanction_date": "2026-2-7"})
        self.assertEqual(updated.expense_amount, "2000")
        self.assertEqual(updated.sanction_date, "2026-02-07")
        self.assertEqual(updated.approval_status, APPROVED_BY_SB)

    async def test_list_by_sales(self):
        service = self.service()
        await service.create({"name": "A", "mobile": "1", "sales": "Ravi Kumar"})
        await service.create({"name": "B", "mobile": "2", "sales": "Meena"})
        self.assertEqual([a.name for a in await service.list(sales="Meena")], ["B"])
        self.assertEqual(len(await service.list()), 2)

    async def test_important_change_clears_approval(self):
        service = self.service()
        app = await service.create({"name": "A", "mobile": "1", "payout": "1000", "status": "Login"})
        await service.approve(app.id, "approve")
        self.assertEqual((await service.get(app.id)).approval_status, APPROVED_BY_SB)

        same = await service.apply_edit(app.id, {"payout": 1000, "banker_name": "Rahul"})
        self.assertEqual(same.approval_status, APPROVED_BY_SB)

        edited = await service.apply_edit(app.id, {"payout": "2000"})
        self.assertEqual(edited.approval_status, "")
        self.assertEqual(edited.status, "Login")

    async def test_reset_status_policy(self):
        service = self.service(application_reset_policy="reset_status")
        app = await service.create({"name": "A", "mobile": "1", "remark": "old", "status": "Sanctioned"})
        edited = await service.apply_edit(app.id, {"remark": "new"})
        self.assertEqual(edited.status, "Pending")

        explicit = await service.apply_edit(app.id, {"remark": "newer", "status": "Disbursed"})
        self.assertEqual(explicit.status, "Disbursed")

    async def test_decisions_are_password_gated(self):
        service = self.service()
        app = await service.create({"name": "A", "mobile": "1"})
        with self.assertRaises(Unauthorized):
            await service.approve(app.id, "wrong")
        with self.assertRaises(NotFound):
            await service.reject("app-missing", "approve")
        rejected = await service.reject(app.id, "approve")
        self.assertEqual(rejected.approval_status, "Rejected by SB")

    def test_changed_fields(self):
        class Stored:
            remark = "note"
            payout = "1000"
            status = None

        updates = {"remark": " note ", "payout": 1000.0, "status": "", "consulting": "x"}
        self.assertEqual(changed_fields(Stored(), updates, ["remark", "payout", "status", "consulting"]), ["consulting"])


class TestBuilderVisitService(DatabaseTestCase):
    def service(self):
        return BuilderVisitService(self.session, SubmissionGuard(5), SECRETS)

    async def test_create_validation(self):
        service = self.service()
        with self.assertRaises(ValidationError):
            await service.create(_visit(project_name=""))
        with self.assertRaises(ValidationError):
            await service.create(_visit(property_sizes=[]))
        with self.assertRaises(ValidationError):
            await service.create(_visit(property_sizes=[{"size": "", "floor": None}]))

    async def test_create_starts_pending(self):
        visit = await self.service().create(_visit(property_sizes=[{"size": "2BHK"}, {"size": " "}]))
        self.assertTrue(visit.id.startswith("bv-"))
        self.assertEqual(visit.approval_status, "Pending")
        self.assertEqual(visit.approval["level1"]["status"], "Pending")
        self.assertEqual(visit.approval["level2"]["status"], "Pending")
        self.assertEqual(len(visit.property_sizes), 1)

    async def test_create_normalizes_dates_and_amounts(self):
        visit = await self.service().create(_visit(
            date_of_visit="07-03-2026",
            market_value="45,00,000",
            property_sizes=[{"size": "2BHK", "total_amount": "45,00,000", "floor": "3"}],
        ))
        self.assertEqual(visit.date_of_visit, "2026-03-07")
        self.assertEqual(visit.market_value, "4500000")
        self.assertEqual(visit.property_sizes, [{"size": "2BHK", "total_amount": "4500000", "floor": "3"}])

    async def test_duplicate_from_lookback_keeps_key(self):
        await self.service().create(_visit())
        guard = SubmissionGuard(5)
        with self.assertRaises(DuplicateSubmission):
            await BuilderVisitService(self.session, guard, SECRETS).create(_visit())
        self.assertEqual(len(guard.store), 1)

    async def test_duplicate(self):
        service = self.service()
        await service.create(_visit())
        with self.assertRaises(DuplicateSubmission):
            await service.create(_visit())

    async def test_full_lifecycle(self):
        service = self.service()
        visit = await service.create(_visit())

        with self.assertRaises(PrecursorNotApproved):
            await service.approve(visit.id, 2, "two", "l2")
        with self.assertRaises(Unauthorized):
            await service.approve(visit.id, 1, "two", "l1")

        visit = await service.approve(visit.id, 1, "one", "l1", "looks fine")
        self.assertEqual(visit.approval_status, "Level1Approved")
        self.assertEqual([v.id for v in await service.list_active()], [visit.id])

        visit = await service.approve(visit.id, 2, "two", "l2")
        self.assertEqual(visit.approval_status, "Level2Approved")
        self.assertEqual(await service.list_active(), [])
        self.assertEqual([v.id for v in await service.list_archive()], [visit.id])

        visit = await service.apply_edit(visit.id, _visit(location="Ahmedabad"))
        self.assertEqual(visit.approval["level1"]["status"], "Pending")
        self.assertEqual(visit.approval["level2"]["status"], "Pending")
        self.assertEqual(visit.approval_status, "Pending")
        self.assertEqual(visit.location, "Ahmedabad")
        self.assertEqual([v.id for v in await service.list_active()], [visit.id])

    async def test_level2_rejection_sends_back_to_level1(self):
        service = self.service()
        visit = await service.create(_visit())
        await service.approve(visit.id, 1, "one", "l1")
        with self.assertRaises(InvalidComment):
            await service.reject(visit.id, 2, "two", "l2", "no")
        visit = await service.reject(visit.id, 2, "two", "l2", "too expensive")
        self.assertEqual(visit.approval["level1"]["status"], "Pending")
        self.assertEqual(visit.approval["level2"]["status"], "Rejected")
        self.assertEqual(visit.approval_status, "Level2Rejected")

    async def test_legacy_record_without_approval_is_active(self):
        service = self.service()
        legacy = await service.store.insert({"id": "bv-legacy", "project_name": "Old", "approval": None})
        self.assertEqual([v.id for v in await service.list_active()], [legacy.id])
        visit = await service.approve(legacy.id, 1, "one", "l1")
        self.assertEqual(visit.approval_status, "Level1Approved")

    async def test_missing(self):
        with self.assertRaises(NotFound):
            await self.service().get("bv-missing")
        with self.assertRaises(NotFound):
            await self.service().apply_edit("bv-missing", _visit())


if __name__ == "__main__":
    unittest.main()
