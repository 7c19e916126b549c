from fastapi import APIRouter

from .partitions import router as partitions_router
from .subscribe import router as subscribe_router
from .system import router as system_router

v1_router = APIRouter()
v1_router.include_router(subscribe_router)
v1_router.include_router(partitions_router, prefix="/partitions")
v1_router.include_router(system_router)

__all__ = ["v1_router"]
