"""Repository for the partition's subscription record."""

import logging

from sqlmodel import func, select
from sqlmodel.ext.asyncio.session import AsyncSession

from pushbell.models.subscription_record import SubscriptionRecord

logger = logging.getLogger(__name__)


class SubscriptionStore:
    """Replace-semantics store: the table holds zero or one row.

    Writes happen in the caller's session; nothing is durable until the
    caller commits, so a replace is all-or-nothing.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self) -> SubscriptionRecord | None:
        result = await self.db.exec(select(SubscriptionRecord).limit(1))
        return result.first()

    async def count(self) -> int:
        result = await self.db.exec(select(func.count()).select_from(SubscriptionRecord))
        return result.one()

    async def clear(self) -> int:
        """Delete every row. Returns the number of deleted rows."""
        result = await self.db.exec(select(SubscriptionRecord))
        existing = list(result.all())
        for row in existing:
            await self.db.delete(row)
        if existing:
            await self.db.flush()
        return len(existing)

    async def replace(self, record: SubscriptionRecord) -> SubscriptionRecord:
        """Delete all rows, then insert *record*. Never fails on an existing endpoint."""
        removed = await self.clear()
        self.db.add(record)
        await self.db.flush()
        if removed:
            logger.debug("Replaced %d existing subscription record(s)", removed)
        return record
