from fastapi import APIRouter, Depends

from pushbell.api.deps import get_partition_router
from pushbell.core.partition import PartitionRouter
from pushbell.schemas.subscription import PartitionStateResponse

router = APIRouter(tags=["partitions"])


@router.get("/{key}", response_model=PartitionStateResponse)
async def get_partition_state(
    key: str,
    partitions: PartitionRouter = Depends(get_partition_router),
) -> PartitionStateResponse:
    """Diagnostics: whether the partition holds a subscription and when its alarm fires."""
    state = await partitions.describe(key)
    return PartitionStateResponse(
        key=state.key,
        has_subscription=state.has_subscription,
        endpoint=state.endpoint,
        wake_at_ms=state.wake_at_ms,
        schema_action=str(state.schema.action) if state.schema else None,
    )
