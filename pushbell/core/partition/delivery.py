"""Alarm handler: one Web Push delivery attempt for the partition's record."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pushbell.common.code import ClassifiedDeliveryError, ErrCode, classify_delivery_error
from pushbell.configs import FailurePolicy, WebPushConfig
from pushbell.core.notification.transport import DeliveryError, DeliveryTransport, PushSubscriptionInfo
from pushbell.core.notification.vapid import build_delivery_options
from pushbell.infra.storage import PartitionStorage
from pushbell.repos import AlarmScheduler, SubscriptionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeliveryOutcome:
    delivered: bool
    endpoint: str
    status_code: int | None = None
    error: ClassifiedDeliveryError | None = None
    pruned: bool = False


class DeliveryWorker:
    """Reads the record, sends once, and clears the partition on success.

    A failed send is logged and contained: the record and alarm are left as
    they were and no retry is scheduled. With ``FailurePolicy.PRUNE_GONE`` a
    permanently dead subscription (404/410) is deleted instead.
    """

    def __init__(
        self,
        storage: PartitionStorage,
        transport: DeliveryTransport,
        webpush: WebPushConfig,
        on_failure: FailurePolicy = FailurePolicy.KEEP,
    ) -> None:
        self.storage = storage
        self.transport = transport
        self.webpush = webpush
        self.on_failure = on_failure

    @property
    def key(self) -> str:
        return self.storage.key

    async def on_timer_fired(self) -> DeliveryOutcome:
        async with self.storage.session() as db:
            record = await SubscriptionStore(db).get()

        if record is None:
            raise ErrCode.SUBSCRIPTION_NOT_FOUND.with_messages(f"No subscription to deliver for partition {self.key}")

        options = build_delivery_options(record.endpoint, self.webpush)
        subscription = PushSubscriptionInfo(endpoint=record.endpoint, p256dh=record.keys_p256dh, auth=record.keys_auth)

        logger.info("[%s] Sending notification to %s", self.key, subscription.host)
        try:
            result = await self.transport.send(subscription, self.webpush.Payload, options)
        except DeliveryError as e:
            return await self._handle_failure(e)

        logger.info("[%s] Notification sent: status=%s body=%s", self.key, result.status_code, result.body[:200])

        async with self.storage.session() as db:
            await SubscriptionStore(db).clear()
            await AlarmScheduler(db).cancel()
            await db.commit()

        return DeliveryOutcome(delivered=True, endpoint=record.endpoint, status_code=result.status_code)

    async def _handle_failure(self, error: DeliveryError) -> DeliveryOutcome:
        classified = classify_delivery_error(error)
        logger.error(
            "[%s] Failed to send notification (%s, ref=%s): %s",
            self.key,
            classified.code,
            classified.error_ref,
            error,
        )
        logger.error("[%s] ref=%s status code: %s", self.key, classified.error_ref, error.status_code)
        logger.error("[%s] ref=%s body: %s", self.key, classified.error_ref, error.body)
        logger.error("[%s] ref=%s headers: %s", self.key, classified.error_ref, error.headers)
        logger.error("[%s] ref=%s endpoint: %s", self.key, classified.error_ref, error.endpoint)

        pruned = False
        if self.on_failure is FailurePolicy.PRUNE_GONE and classified.code.permanent:
            async with self.storage.session() as db:
                pruned = await SubscriptionStore(db).clear() > 0
                await db.commit()
            logger.info("[%s] Subscription is %s, record removed", self.key, classified.code)

        return DeliveryOutcome(
            delivered=False,
            endpoint=error.endpoint,
            status_code=error.status_code,
            error=classified,
            pruned=pruned,
        )
