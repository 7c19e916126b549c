from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from pushbell.core.partition import PartitionRouter
from pushbell.main import app


@pytest_asyncio.fixture
async def async_client(partition_router: PartitionRouter) -> AsyncGenerator[AsyncClient, None]:
    """Async test client wired to the test partition router (lifespan is not run)."""
    app.state.partition_router = partition_router
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    del app.state.partition_router
