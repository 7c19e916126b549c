"""Subscription endpoint: the only write entry point."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from pushbell.api.deps import get_partition_router, partition_key_for_endpoint
from pushbell.core.partition import PartitionRouter
from pushbell.schemas.subscription import PushSubscriptionRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["subscriptions"])


@router.post("/subscribe", response_class=PlainTextResponse)
async def subscribe(
    body: PushSubscriptionRequest,
    partitions: PartitionRouter = Depends(get_partition_router),
) -> str:
    """Store the subscription in its partition and arm delivery.

    Returns as soon as the subscription is durable; the delivery outcome is
    only visible in the logs.
    """
    key = partition_key_for_endpoint(body.endpoint)
    logger.info("Subscribe called (partition=%s)", key)
    await partitions.register(key, body.to_info())
    return "Subscribed"
