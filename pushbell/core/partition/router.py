"""Maps partition keys to their actors and owns the actors' lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pushbell.common.code import ErrCode, ErrCodeError
from pushbell.configs import AppConfig, configs
from pushbell.core.notification.transport import DeliveryTransport, PushSubscriptionInfo, WebPushTransport
from pushbell.core.partition.actor import PartitionActor, PartitionState
from pushbell.infra.storage import list_partition_keys, validate_partition_key
from pushbell.repos import ArmResult
from pushbell.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PartitionRouter:
    """Resolve a key to the one actor that owns it.

    At most one live actor exists per key. An actor is created on first
    resolve and evicted once it goes idle (no queued work, no pending
    alarm); its durable state stays on disk and the next operation on the
    key activates a fresh actor.
    """

    def __init__(
        self,
        transport: DeliveryTransport | None = None,
        settings: AppConfig | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.transport: DeliveryTransport = transport or WebPushTransport()
        self.settings = settings or configs
        self.clock = clock
        self._actors: dict[str, PartitionActor] = {}
        self._lock = asyncio.Lock()
        self._evictions: set[asyncio.Task[None]] = set()
        self._closed = False

    def __contains__(self, key: str) -> bool:
        return key in self._actors

    @property
    def keys(self) -> list[str]:
        return list(self._actors)

    async def resolve(self, key: str) -> PartitionActor:
        validate_partition_key(key)
        async with self._lock:
            if self._closed:
                raise ErrCode.PARTITION_CLOSED.with_messages("Partition router is shut down")
            actor = self._actors.get(key)
            if actor is None or actor.closed:
                actor = PartitionActor(key, self.transport, self.settings, self.clock, on_idle=self._schedule_eviction)
                self._actors[key] = actor
                logger.debug("Partition actor created: %s", key)
            return actor

    async def _call(self, key: str, op: Callable[[PartitionActor], Awaitable[T]]) -> T:
        while True:
            actor = await self.resolve(key)
            try:
                return await op(actor)
            except ErrCodeError as e:
                # evicted between resolve and submit; nothing was queued
                if e.code is not ErrCode.PARTITION_CLOSED or self._closed:
                    raise

    async def register(self, key: str, subscription: PushSubscriptionInfo) -> ArmResult:
        return await self._call(key, lambda actor: actor.register(subscription))

    async def greet(self, key: str, name: str) -> str:
        return await self._call(key, lambda actor: actor.greet(name))

    async def describe(self, key: str) -> PartitionState:
        return await self._call(key, lambda actor: actor.describe())

    async def recover(self) -> int:
        """Re-activate every persisted partition that still has an alarm.

        Partitions without an alarm are closed again straight away. Returns
        the number of alarms put back on the loop.
        """
        if self.settings.Storage.InMemory:
            return 0

        recovered = 0
        for key in list_partition_keys(self.settings.Storage.DataDir):
            try:
                state = await self.describe(key)
            except Exception:
                logger.exception("Failed to recover partition %s", key)
                continue

            if state.wake_at_ms is None:
                await self._drop(key)
            else:
                recovered += 1

        logger.info("Recovered %d pending alarm(s)", recovered)
        return recovered

    def _schedule_eviction(self, actor: PartitionActor) -> None:
        if self._closed:
            return
        task = asyncio.create_task(self._drop(actor.key, actor), name=f"evict:{actor.key}")
        self._evictions.add(task)
        task.add_done_callback(self._evictions.discard)

    async def _drop(self, key: str, expected: PartitionActor | None = None) -> None:
        """Close the actor for *key*. With *expected*, only if it is still that actor and idle."""
        async with self._lock:
            actor = self._actors.get(key)
            if actor is None:
                return
            if expected is not None and (actor is not expected or not actor.idle):
                return
            del self._actors[key]
        await actor.close()
        logger.debug("Partition actor evicted: %s", key)

    async def shutdown(self) -> None:
        async with self._lock:
            self._closed = True
            actors = list(self._actors.values())
            self._actors.clear()
        await asyncio.gather(*self._evictions)
        await asyncio.gather(*(actor.close() for actor in actors))
        logger.info("Partition router stopped (%d actors)", len(actors))
