"""
Per-partition SQLite storage.

Each partition key owns one database file (``<DataDir>/<quoted key>.sqlite3``)
holding its subscription record and alarm slot. Nothing is shared between
partitions, so two keys never contend for the same file lock.

pysqlite's implicit transaction handling does not wrap DDL, which would let a
half-finished schema rebuild become visible. The engine therefore disables the
driver's own BEGIN and emits one for every SQLAlchemy transaction, so DDL and
DML commit or roll back together.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

from sqlalchemy import URL, event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from pushbell.common.code import ErrCode
from pushbell.configs import StorageConfig, configs

logger = logging.getLogger(__name__)

PARTITION_FILE_SUFFIX = ".sqlite3"
MAX_PARTITION_KEY_LENGTH = 200
# Common NAME_MAX of Linux/macOS filesystems, in bytes
MAX_PARTITION_FILE_NAME_LENGTH = 255


def partition_file_name(key: str) -> str:
    return f"{quote(key, safe='')}{PARTITION_FILE_SUFFIX}"


def validate_partition_key(key: str) -> str:
    if not key or len(key) > MAX_PARTITION_KEY_LENGTH:
        raise ErrCode.INVALID_PARTITION_KEY.with_messages(
            f"Partition key must be 1-{MAX_PARTITION_KEY_LENGTH} characters"
        )
    # quoting is ASCII-only, so characters are bytes here
    if len(partition_file_name(key)) > MAX_PARTITION_FILE_NAME_LENGTH:
        raise ErrCode.INVALID_PARTITION_KEY.with_messages(
            f"Partition key must encode to at most {MAX_PARTITION_FILE_NAME_LENGTH} bytes as a file name"
        )
    return key


def partition_path(key: str, data_dir: str | Path) -> Path:
    return Path(data_dir) / partition_file_name(key)


def list_partition_keys(data_dir: str | Path) -> list[str]:
    """Return the keys of every partition persisted under *data_dir*."""
    root = Path(data_dir)
    if not root.is_dir():
        return []
    return sorted(unquote(path.name[: -len(PARTITION_FILE_SUFFIX)]) for path in root.glob(f"*{PARTITION_FILE_SUFFIX}"))


def _enable_transactional_ddl(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        # stop the driver from emitting BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_partition_engine(key: str, storage: StorageConfig | None = None) -> AsyncEngine:
    storage = storage or configs.Storage

    if storage.InMemory:
        engine = create_async_engine("sqlite+aiosqlite://", echo=storage.Echo, poolclass=StaticPool)
    else:
        path = partition_path(key, storage.DataDir)
        path.parent.mkdir(parents=True, exist_ok=True)
        url = URL.create("sqlite+aiosqlite", database=str(path))
        engine = create_async_engine(url, echo=storage.Echo)

    _enable_transactional_ddl(engine)
    return engine


class PartitionStorage:
    """The durable cell of one partition."""

    def __init__(self, key: str, engine: AsyncEngine) -> None:
        self.key = key
        self.engine = engine

    @classmethod
    def open(cls, key: str, storage: StorageConfig | None = None) -> "PartitionStorage":
        return cls(validate_partition_key(key), create_partition_engine(key, storage))

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session; everything not committed explicitly is rolled back on exit."""
        async with AsyncSession(self.engine, expire_on_commit=False) as db:
            yield db

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.debug("Partition %s storage disposed", self.key)
