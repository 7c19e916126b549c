"""
Single-writer actor for one partition key.

Every operation on a key (register, greet, describe, alarm fire) is queued
on the actor and executed by its one worker task, strictly in arrival order.
A read-then-write sequence such as ``arm_if_absent`` therefore never races
with another operation on the same key, while other keys run independently.

Activation happens lazily before the first operation: the partition's
storage is opened, the schema is ensured and any persisted alarm is put back
on the event loop. A failed activation is retried by the next operation.
Once nothing is queued, running or scheduled the actor reports itself idle
so its owner can close it; the next operation re-activates the key.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any, TypeVar

from pushbell.common.code import ErrCode
from pushbell.configs import AppConfig, configs
from pushbell.core.notification.transport import DeliveryTransport, PushSubscriptionInfo
from pushbell.core.partition.delivery import DeliveryOutcome, DeliveryWorker
from pushbell.core.partition.migrator import SchemaMigrator, SchemaReport
from pushbell.infra.storage import PartitionStorage
from pushbell.models.subscription_record import SubscriptionRecord
from pushbell.repos import AlarmScheduler, ArmResult, SubscriptionStore
from pushbell.utils.clock import Clock, format_ms, now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class _Job:
    fn: Callable[[], Awaitable[Any]]
    # None for alarm fires, which have no caller waiting on them
    future: asyncio.Future[Any] | None


@dataclass(frozen=True, slots=True)
class PartitionState:
    key: str
    has_subscription: bool
    endpoint: str | None
    wake_at_ms: int | None
    schema: SchemaReport | None


class PartitionActor:
    def __init__(
        self,
        key: str,
        transport: DeliveryTransport,
        settings: AppConfig | None = None,
        clock: Clock = now_ms,
        on_idle: Callable[[PartitionActor], None] | None = None,
    ) -> None:
        self.key = key
        self.transport = transport
        self.settings = settings or configs
        self.clock = clock
        self.on_idle = on_idle

        self._queue: asyncio.Queue[_Job | None] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._storage: PartitionStorage | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._fire_attempts = 0
        self._busy = False
        self._closed = False

        # Computed from the persisted layout on every activation, never stored
        self.schema: SchemaReport | None = None

    @property
    def active(self) -> bool:
        return self.schema is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def idle(self) -> bool:
        """Nothing queued, running or scheduled.

        Everything an idle actor knows is durable, so it can be closed and
        re-activated on the next operation without losing state.
        """
        return not self._closed and not self._busy and self._timer is None and self._queue.empty()

    @property
    def delay_ms(self) -> int:
        return int(self.settings.Scheduler.DeliveryDelaySeconds * 1000)

    # --- Public operations ------------------------------------------------------

    async def register(self, subscription: PushSubscriptionInfo) -> ArmResult:
        """Store *subscription* (replacing any previous one) and arm the alarm if none is pending."""
        return await self._submit(partial(self._register, subscription))

    async def greet(self, name: str) -> str:
        return await self._submit(partial(self._greet, name))

    async def describe(self) -> PartitionState:
        return await self._submit(self._describe)

    async def close(self) -> None:
        """Finish queued operations, then stop. The durable alarm survives for recovery."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timer()
        self._queue.put_nowait(None)
        if self._worker is not None:
            await self._worker
        # a job drained above may have re-armed the timer
        self._cancel_timer()
        if self._storage is not None:
            await self._storage.dispose()
            self._storage = None
        self.schema = None
        logger.debug("[%s] Partition actor closed", self.key)

    # --- Queue ------------------------------------------------------------------

    async def _submit(self, fn: Callable[[], Awaitable[T]]) -> T:
        if self._closed:
            raise ErrCode.PARTITION_CLOSED.with_messages(f"Partition {self.key} is shutting down")
        self._ensure_worker()
        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_Job(fn, future))
        return await future

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name=f"partition:{self.key}")

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            if job is None:
                break
            if job.future is None or not job.future.cancelled():
                await self._run_job(job)
            if self.on_idle is not None and self.idle:
                self.on_idle(self)

    async def _run_job(self, job: _Job) -> None:
        self._busy = True
        try:
            result = await job.fn()
        except Exception as e:
            if job.future is None:
                logger.exception("[%s] Background job failed", self.key)
            elif not job.future.done():
                job.future.set_exception(e)
        else:
            if job.future is not None and not job.future.done():
                job.future.set_result(result)
        finally:
            self._busy = False

    # --- Activation -------------------------------------------------------------

    async def _ensure_active(self) -> PartitionStorage:
        if self._storage is not None and self.schema is not None:
            return self._storage

        if self._storage is None:
            self._storage = PartitionStorage.open(self.key, self.settings.Storage)
        storage = self._storage

        async with storage.session() as db:
            report = await SchemaMigrator(self.key).ensure_schema(db)
            wake_at_ms = await AlarmScheduler(db, self.clock).current()
            await db.commit()

        self.schema = report
        logger.info("[%s] Partition activated (schema %s, alarm %s)", self.key, report.action, format_ms(wake_at_ms))
        if wake_at_ms is not None:
            self._schedule_timer(wake_at_ms)
        return storage

    # --- Operation bodies (run on the worker) -----------------------------------

    async def _register(self, subscription: PushSubscriptionInfo) -> ArmResult:
        storage = await self._ensure_active()
        logger.info("[%s] Registering subscription", self.key)

        async with storage.session() as db:
            await SubscriptionStore(db).replace(
                SubscriptionRecord(
                    endpoint=subscription.endpoint,
                    keys_p256dh=subscription.p256dh,
                    keys_auth=subscription.auth,
                )
            )
            result = await AlarmScheduler(db, self.clock).arm_if_absent(self.delay_ms)
            await db.commit()

        logger.info("[%s] Subscription registered: %s", self.key, subscription.endpoint[:60])
        if result.armed:
            self._fire_attempts = 0
            self._schedule_timer(result.wake_at_ms)
        return result

    async def _greet(self, name: str) -> str:
        await self._ensure_active()
        return f"Hello, {name}! From partition {self.key}"

    async def _describe(self) -> PartitionState:
        storage = await self._ensure_active()
        async with storage.session() as db:
            record = await SubscriptionStore(db).get()
            wake_at_ms = await AlarmScheduler(db, self.clock).current()
        return PartitionState(
            key=self.key,
            has_subscription=record is not None,
            endpoint=record.endpoint if record else None,
            wake_at_ms=wake_at_ms,
            schema=self.schema,
        )

    # --- Alarm ------------------------------------------------------------------

    def _schedule_timer(self, wake_at_ms: int, delay: float | None = None) -> None:
        self._cancel_timer()
        if delay is None:
            delay = max(0.0, (wake_at_ms - self.clock()) / 1000)
        self._timer = asyncio.get_running_loop().call_later(delay, self._enqueue_fire, wake_at_ms)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _enqueue_fire(self, wake_at_ms: int) -> None:
        self._timer = None
        if self._closed:
            return
        self._ensure_worker()
        self._queue.put_nowait(_Job(partial(self._fire, wake_at_ms), None))

    async def _fire(self, wake_at_ms: int) -> DeliveryOutcome | None:
        fired_at_ms = wake_at_ms
        try:
            storage = await self._ensure_active()
            async with storage.session() as db:
                current = await AlarmScheduler(db, self.clock).current()

            if current is None:
                logger.debug("[%s] Alarm for %s was cancelled, ignoring", self.key, format_ms(wake_at_ms))
                return None
            if current > self.clock():
                # re-armed, or the loop woke us before the wall clock caught up
                self._schedule_timer(current)
                return None

            fired_at_ms = current
            logger.info("[%s] Alarm triggered (%s)", self.key, format_ms(current))
            outcome = await DeliveryWorker(
                storage,
                self.transport,
                self.settings.WebPush,
                self.settings.Scheduler.OnFailure,
            ).on_timer_fired()
        except Exception as e:
            await self._on_fire_failed(fired_at_ms, e)
            return None

        self._fire_attempts = 0
        await self._consume_alarm(fired_at_ms)
        return outcome

    async def _consume_alarm(self, fired_at_ms: int) -> None:
        """Delete the alarm that just fired, unless the handler already replaced or cleared it."""
        storage = await self._ensure_active()
        async with storage.session() as db:
            alarms = AlarmScheduler(db, self.clock)
            if await alarms.current() == fired_at_ms:
                await alarms.cancel()
                await db.commit()

    async def _on_fire_failed(self, wake_at_ms: int, error: Exception) -> None:
        scheduler = self.settings.Scheduler
        self._fire_attempts += 1

        if self._fire_attempts >= scheduler.FireRetryLimit:
            logger.error(
                "[%s] Alarm handler failed %d times, dropping alarm: %s",
                self.key,
                self._fire_attempts,
                error,
            )
            self._fire_attempts = 0
            try:
                await self._consume_alarm(wake_at_ms)
            except Exception:
                logger.exception("[%s] Failed to drop alarm after repeated failures", self.key)
            return

        retry_in = scheduler.FireRetryBaseSeconds * 2 ** (self._fire_attempts - 1)
        logger.warning(
            "[%s] Alarm handler failed (attempt %d/%d), retrying in %.1fs: %s",
            self.key,
            self._fire_attempts,
            scheduler.FireRetryLimit,
            retry_in,
            error,
        )
        self._schedule_timer(wake_at_ms, delay=retry_in)
