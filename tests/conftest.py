import asyncio
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

import pytest
import pytest_asyncio

from pushbell.configs import AppConfig, SchedulerConfig, StorageConfig, WebPushConfig
from pushbell.core.partition import PartitionRouter, PartitionState
from pushbell.infra.storage import PartitionStorage
from tests.fixtures.client import async_client  # noqa: F401
from tests.fixtures.transport import FakeTransport


@pytest.fixture
def settings(tmp_path: Path) -> AppConfig:
    return AppConfig(
        Storage=StorageConfig(DataDir=str(tmp_path / "partitions")),
        WebPush=WebPushConfig(VapidPrivateKey="test-private-key", VapidPublicKey="test-public-key"),
        Scheduler=SchedulerConfig(DeliveryDelaySeconds=0.1, FireRetryLimit=2, FireRetryBaseSeconds=0.05),
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest_asyncio.fixture
async def storage(settings: AppConfig) -> AsyncGenerator[PartitionStorage, None]:
    storage = PartitionStorage.open("k1", settings.Storage)
    yield storage
    await storage.dispose()


@pytest_asyncio.fixture
async def partition_router(settings: AppConfig, transport: FakeTransport) -> AsyncGenerator[PartitionRouter, None]:
    router = PartitionRouter(transport=transport, settings=settings)
    yield router
    await router.shutdown()


async def wait_for_state(
    router: PartitionRouter,
    key: str,
    predicate: Callable[[PartitionState], bool],
    timeout: float = 3.0,
) -> PartitionState:
    """Poll ``describe(key)`` until *predicate* holds. Idle actors are evicted, so go through the router."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        state = await router.describe(key)
        if predicate(state):
            return state
        if loop.time() > deadline:
            raise AssertionError(f"partition {key} never reached the expected state: {state}")
        await asyncio.sleep(0.02)


@pytest.fixture
def wait_for() -> Callable[..., Awaitable[PartitionState]]:
    return wait_for_state
