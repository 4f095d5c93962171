"""
Backfill the two-level approval structure on builder visits.
Visits without one get both levels Pending; legacy approvalStatus values are mapped
(Approved -> level 2 Approved, Rejected / Changes Needed -> level 2 Rejected).
Run: python -m scripts.migrate_approval_status (from the project root).
"""
import asyncio
import os
import sys

# Add parent so we can import from the project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from database import init_db, session_scope
from models import BuilderVisit
from services.approval import legacy_projection


async def migrate() -> int:
    await init_db()
    changed = 0
    async with session_scope() as session:
        result = await session.execute(select(BuilderVisit))
        for visit in result.scalars().all():
            outcome = legacy_projection(visit.approval, visit.approval_status)
            if outcome is None:
                continue
            visit.approval = outcome.approval
            visit.approval_status = outcome.approval_status
            changed += 1
    print(f"Migration complete. Builder visits updated: {changed}")
    return changed


if __name__ == "__main__":
    asyncio.run(migrate())
