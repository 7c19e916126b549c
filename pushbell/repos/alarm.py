"""Repository for the partition's durable single alarm."""

import logging
from dataclasses import dataclass

from sqlmodel.ext.asyncio.session import AsyncSession

from pushbell.models.alarm import ALARM_SLOT_ID, AlarmSlot
from pushbell.utils.clock import Clock, format_ms, now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ArmResult:
    armed: bool
    wake_at_ms: int


class AlarmScheduler:
    """One wake-up time per partition, never stacked.

    A stored time that is ``<= now`` has matured but not fired yet; it counts
    as absent for arming purposes.
    """

    def __init__(self, db: AsyncSession, clock: Clock = now_ms) -> None:
        self.db = db
        self.clock = clock

    async def current(self) -> int | None:
        slot = await self.db.get(AlarmSlot, ALARM_SLOT_ID)
        return slot.wake_at_ms if slot else None

    async def set(self, wake_at_ms: int) -> None:
        slot = await self.db.get(AlarmSlot, ALARM_SLOT_ID)
        if slot:
            slot.wake_at_ms = wake_at_ms
        else:
            slot = AlarmSlot(slot=ALARM_SLOT_ID, wake_at_ms=wake_at_ms)
        self.db.add(slot)
        await self.db.flush()

    async def arm_if_absent(self, delay_ms: int) -> ArmResult:
        now = self.clock()
        current = await self.current()
        if current is not None and current > now:
            logger.info("Alarm already set for %s", format_ms(current))
            return ArmResult(armed=False, wake_at_ms=current)

        wake_at_ms = now + delay_ms
        await self.set(wake_at_ms)
        logger.info("Alarm set for %s", format_ms(wake_at_ms))
        return ArmResult(armed=True, wake_at_ms=wake_at_ms)

    async def cancel(self) -> bool:
        """Clear the wake-up time. Returns False when there was nothing to clear."""
        slot = await self.db.get(AlarmSlot, ALARM_SLOT_ID)
        if not slot:
            return False
        await self.db.delete(slot)
        await self.db.flush()
        return True
