import hashlib

from fastapi import Request

from pushbell.core.partition import PartitionRouter


def get_partition_router(request: Request) -> PartitionRouter:
    return request.app.state.partition_router


def partition_key_for_endpoint(endpoint: str) -> str:
    """Stable partition key of a push endpoint: its MD5 hex digest."""
    return hashlib.md5(endpoint.encode("utf-8"), usedforsecurity=False).hexdigest()
