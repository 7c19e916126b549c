"""Integration tests for SchemaMigrator against a real partition file."""

import pytest
from sqlalchemy import inspect, text

from pushbell.common.code import ErrCode, ErrCodeError
from pushbell.core.partition import SchemaAction, SchemaMigrator, SchemaReport
from pushbell.infra.storage import PartitionStorage


async def _exec(storage: PartitionStorage, *statements: str) -> None:
    async with storage.engine.begin() as conn:
        for statement in statements:
            await conn.execute(text(statement))


async def _rows(storage: PartitionStorage) -> list[tuple[str, str, str]]:
    async with storage.engine.connect() as conn:
        result = await conn.execute(
            text("SELECT endpoint, keys_p256dh, keys_auth FROM subscription_records ORDER BY endpoint")
        )
        return [tuple(row) for row in result.all()]


async def _layout(storage: PartitionStorage) -> tuple[list[str], list[str]]:
    async with storage.engine.connect() as conn:

        def read(sync_conn):
            inspector = inspect(sync_conn)
            columns = [col["name"] for col in inspector.get_columns("subscription_records")]
            pk = inspector.get_pk_constraint("subscription_records")["constrained_columns"]
            return columns, pk

        return await conn.run_sync(read)


async def _migrate(storage: PartitionStorage) -> SchemaReport:
    async with storage.session() as db:
        report = await SchemaMigrator(storage.key).ensure_schema(db)
        await db.commit()
    return report


@pytest.mark.integration
class TestSchemaMigrator:
    async def test_creates_missing_table(self, storage: PartitionStorage) -> None:
        report = await _migrate(storage)

        assert report.action is SchemaAction.CREATED
        assert report.changed
        columns, pk = await _layout(storage)
        assert columns == ["endpoint", "keys_p256dh", "keys_auth"]
        assert pk == ["endpoint"]

    async def test_second_run_is_unchanged(self, storage: PartitionStorage) -> None:
        await _migrate(storage)
        report = await _migrate(storage)

        assert report.action is SchemaAction.UNCHANGED
        assert not report.changed

    async def test_current_layout_keeps_rows(self, storage: PartitionStorage) -> None:
        await _migrate(storage)
        await _exec(storage, "INSERT INTO subscription_records VALUES ('https://a', 'p', 'x')")

        report = await _migrate(storage)

        assert report.action is SchemaAction.UNCHANGED
        assert await _rows(storage) == [("https://a", "p", "x")]

    async def test_rebuild_fills_missing_columns_and_dedupes(self, storage: PartitionStorage) -> None:
        await _exec(
            storage,
            "CREATE TABLE subscription_records (endpoint TEXT, keys_p256dh TEXT)",
            "INSERT INTO subscription_records VALUES ('https://a', 'p1')",
            "INSERT INTO subscription_records VALUES ('https://a', 'p2')",
            "INSERT INTO subscription_records VALUES ('https://b', 'q')",
        )

        report = await _migrate(storage)

        assert report.action is SchemaAction.MIGRATED
        assert report.missing_columns == ("keys_auth",)
        assert report.rows_before == 3
        assert report.rows_after == 2
        assert await _rows(storage) == [("https://a", "p2", ""), ("https://b", "q", "")]
        _, pk = await _layout(storage)
        assert pk == ["endpoint"]

    async def test_rebuild_when_endpoint_is_not_primary_key(self, storage: PartitionStorage) -> None:
        await _exec(
            storage,
            "CREATE TABLE subscription_records (id INTEGER PRIMARY KEY, endpoint TEXT, keys_p256dh TEXT, keys_auth TEXT)",
            "INSERT INTO subscription_records (endpoint, keys_p256dh, keys_auth) VALUES ('https://a', 'p', 'x')",
        )

        report = await _migrate(storage)

        assert report.action is SchemaAction.MIGRATED
        assert report.missing_columns == ()
        assert report.dropped_columns == ("id",)
        columns, pk = await _layout(storage)
        assert columns == ["endpoint", "keys_p256dh", "keys_auth"]
        assert pk == ["endpoint"]
        assert await _rows(storage) == [("https://a", "p", "x")]

    async def test_missing_endpoint_collapses_to_one_empty_record(self, storage: PartitionStorage) -> None:
        await _exec(
            storage,
            "CREATE TABLE subscription_records (keys_p256dh TEXT, keys_auth TEXT)",
            "INSERT INTO subscription_records VALUES ('p1', 'x1')",
            "INSERT INTO subscription_records VALUES ('p2', 'x2')",
        )

        report = await _migrate(storage)

        assert report.missing_columns == ("endpoint",)
        assert await _rows(storage) == [("", "p2", "x2")]

    async def test_empty_legacy_table_still_migrates(self, storage: PartitionStorage) -> None:
        await _exec(storage, "CREATE TABLE subscription_records (endpoint TEXT)")

        report = await _migrate(storage)

        assert report.action is SchemaAction.MIGRATED
        assert report.rows_before == 0
        assert report.rows_after == 0
        columns, pk = await _layout(storage)
        assert columns == ["endpoint", "keys_p256dh", "keys_auth"]
        assert pk == ["endpoint"]

    async def test_migration_is_idempotent_after_rebuild(self, storage: PartitionStorage) -> None:
        await _exec(storage, "CREATE TABLE subscription_records (endpoint TEXT, keys_auth TEXT)")

        first = await _migrate(storage)
        second = await _migrate(storage)

        assert first.action is SchemaAction.MIGRATED
        assert second.action is SchemaAction.UNCHANGED

    async def test_failure_rolls_back_and_raises(self, storage: PartitionStorage) -> None:
        await _exec(
            storage,
            "CREATE TABLE subscription_records (endpoint TEXT)",
            "INSERT INTO subscription_records VALUES ('https://a')",
            # occupies the shadow table name
            "CREATE VIEW subscription_records__shadow AS SELECT 1",
        )

        with pytest.raises(ErrCodeError) as exc_info:
            await _migrate(storage)

        assert exc_info.value.code is ErrCode.SCHEMA_MIGRATION_FAILED
        columns, pk = await _layout(storage)
        assert columns == ["endpoint"]
        assert pk == []
