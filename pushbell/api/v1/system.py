from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from pushbell.api.deps import get_partition_router
from pushbell.core.partition import PartitionRouter

router = APIRouter(tags=["system"])


@router.get("/healthz")
async def healthz() -> dict[str, bool]:
    return {"ok": True}


@router.get("/", response_class=PlainTextResponse)
async def greet(
    name: str = Query(default="world", min_length=1, max_length=200),
    partitions: PartitionRouter = Depends(get_partition_router),
) -> str:
    """Liveness echo routed through the partition named *name*."""
    return await partitions.greet(name, name)
