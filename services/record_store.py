"""
Thin document-store style facade over an AsyncSession for one model class.
find / find_by_id / insert / update_by_id mirror what the services need; dotted filter keys
("approval.level2.status") compare inside JSON columns.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import inspect, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.normalizer import parse_date

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


def as_dict(obj: Any) -> dict[str, Any]:
    """Column values of an ORM instance as a plain dict (snake_case keys)."""
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def in_date_range(value: Any, start: datetime, end: datetime) -> bool:
    parsed = parse_date(value)
    if parsed is None:
        return False
    return start.date() <= parsed <= end.date()


class RecordStore(Generic[ModelT]):
    def __init__(self, session: AsyncSession, model: type[ModelT]):
        self.session = session
        self.model = model

    def _column(self, key: str):
        head, *path = key.split(".")
        column = getattr(self.model, head)
        if path:
            return column[tuple(path)].as_string()
        return column

    async def find(
        self,
        filters: Optional[dict[str, Any]] = None,
        exclude: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = "-created_at",
        date_range: Optional[tuple[str, datetime, datetime]] = None,
    ) -> list[ModelT]:
        """
        Records matching every equality filter and none of the exclusions.
        order_by is a column name, "-" prefix for descending.
        date_range=(field, start, end) is evaluated after loading because date columns hold
        DD-MM-YYYY and YYYY-MM-DD strings side by side.
        """
        stmt = select(self.model)
        for key, value in (filters or {}).items():
            stmt = stmt.where(self._column(key) == value)
        for key, value in (exclude or {}).items():
            column = self._column(key)
            stmt = stmt.where(or_(column.is_(None), column != value))
        if order_by:
            column = getattr(self.model, order_by.lstrip("-"))
            stmt = stmt.order_by(column.desc() if order_by.startswith("-") else column.asc())
        result = await self.session.execute(stmt)
        records = list(result.scalars().all())
        if date_range:
            field, start, end = date_range
            records = [r for r in records if in_date_range(getattr(r, field), start, end)]
        return records

    async def find_by_id(self, record_id: str) -> Optional[ModelT]:
        result = await self.session.execute(select(self.model).where(self.model.id == record_id))
        return result.scalar_one_or_none()

    async def find_recent(self, since: datetime, **equals: Any) -> Optional[ModelT]:
        """Most recent record created at or after `since` with the given column values."""
        stmt = select(self.model).where(self.model.created_at >= since)
        for key, value in equals.items():
            stmt = stmt.where(getattr(self.model, key) == value)
        stmt = stmt.order_by(self.model.created_at.desc()).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def insert(self, values: dict[str, Any]) -> ModelT:
        now = datetime.now(timezone.utc)
        record = self.model(**{"created_at": now, "updated_at": now, **values})
        self.session.add(record)
        await self.session.flush()
        return record

    async def update_by_id(self, record_id: str, values: dict[str, Any]) -> Optional[ModelT]:
        record = await self.find_by_id(record_id)
        if record is None:
            return None
        for key, value in values.items():
            setattr(record, key, value)
        record.updated_at = datetime.now(timezone.utc)
        await self.session.flush()
        return record
