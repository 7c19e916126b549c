"""Idempotent schema bootstrap for a partition's subscription table.

Older partitions may hold a ``subscription_records`` table with missing
columns or without ``endpoint`` as its primary key. SQLite cannot alter a
primary key in place, so such a table is rebuilt: a shadow table with the
current layout is created, rows are copied over (missing columns become
``''``, duplicate endpoints collapse into one row), the old table is dropped
and the shadow renamed into place. All of it runs in the caller's
transaction; a failure leaves the old table untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from sqlalchemy import Connection, MetaData, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from pushbell.common.code import ErrCode
from pushbell.models.alarm import AlarmSlot
from pushbell.models.subscription_record import SUBSCRIPTION_RECORD_COLUMNS, SubscriptionRecord

logger = logging.getLogger(__name__)

PRIMARY_KEY_COLUMN = "endpoint"
_SHADOW_SUFFIX = "__shadow"


class SchemaAction(StrEnum):
    CREATED = "created"
    MIGRATED = "migrated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class TableLayout:
    columns: tuple[str, ...]
    primary_key: tuple[str, ...]

    def missing(self, expected: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(col for col in expected if col not in self.columns)

    def extra(self, expected: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(col for col in self.columns if col not in expected)

    @property
    def endpoint_is_primary_key(self) -> bool:
        return self.primary_key == (PRIMARY_KEY_COLUMN,)


@dataclass(frozen=True, slots=True)
class SchemaReport:
    """What ``ensure_schema`` found and did during one activation."""

    action: SchemaAction
    missing_columns: tuple[str, ...] = field(default_factory=tuple)
    dropped_columns: tuple[str, ...] = field(default_factory=tuple)
    rows_before: int = 0
    rows_after: int = 0

    @property
    def changed(self) -> bool:
        return self.action is not SchemaAction.UNCHANGED


def _read_layout(sync_conn: Connection, table_name: str) -> TableLayout | None:
    inspector = inspect(sync_conn)
    if not inspector.has_table(table_name):
        return None
    columns = tuple(col["name"] for col in inspector.get_columns(table_name))
    primary_key = tuple(inspector.get_pk_constraint(table_name).get("constrained_columns") or ())
    return TableLayout(columns=columns, primary_key=primary_key)


class SchemaMigrator:
    """Bring ``subscription_records`` to the current layout. Safe to call repeatedly."""

    expected_columns: tuple[str, ...] = SUBSCRIPTION_RECORD_COLUMNS

    def __init__(self, partition_key: str = "") -> None:
        self.partition_key = partition_key
        self.table = SubscriptionRecord.__table__  # type: ignore[attr-defined]

    async def ensure_schema(self, db: AsyncSession) -> SchemaReport:
        """Create or rebuild the record table inside *db*'s transaction.

        The caller commits. Raises ``ErrCodeError(SCHEMA_MIGRATION_FAILED)``
        on any storage error, after which the transaction must be rolled back.
        """
        try:
            conn = await db.connection()
            await conn.run_sync(lambda c: AlarmSlot.__table__.create(c, checkfirst=True))  # type: ignore[attr-defined]

            layout = await conn.run_sync(_read_layout, self.table.name)
            if layout is None:
                await conn.run_sync(lambda c: self.table.create(c))
                logger.info("[%s] Created table %s", self.partition_key, self.table.name)
                return SchemaReport(action=SchemaAction.CREATED)

            missing = layout.missing(self.expected_columns)
            if not missing and layout.endpoint_is_primary_key:
                return SchemaReport(action=SchemaAction.UNCHANGED)

            return await self._rebuild(db, layout, missing)
        except SQLAlchemyError as e:
            logger.error("[%s] Schema migration failed: %s", self.partition_key, e)
            raise ErrCode.SCHEMA_MIGRATION_FAILED.with_errors(e) from e

    async def _rebuild(self, db: AsyncSession, layout: TableLayout, missing: tuple[str, ...]) -> SchemaReport:
        conn = await db.connection()
        quote = conn.dialect.identifier_preparer.quote
        table_name = self.table.name
        shadow_name = f"{table_name}{_SHADOW_SUFFIX}"

        if PRIMARY_KEY_COLUMN in missing:
            logger.warning(
                "[%s] %s has no %s column; existing rows collapse into one record with an empty endpoint",
                self.partition_key,
                table_name,
                PRIMARY_KEY_COLUMN,
            )

        rows_before = (await conn.execute(text(f"SELECT COUNT(*) FROM {quote(table_name)}"))).scalar_one()

        shadow = self.table.to_metadata(MetaData(), name=shadow_name)
        await conn.execute(text(f"DROP TABLE IF EXISTS {quote(shadow_name)}"))
        await conn.run_sync(lambda c: shadow.create(c))

        # Substitute '' for absent columns, then collapse duplicate endpoints with MAX()
        select_parts = ", ".join(
            f"{quote(col)} AS {quote(col)}" if col in layout.columns else f"'' AS {quote(col)}"
            for col in self.expected_columns
        )
        value_parts = ", ".join(
            quote(col) if col == PRIMARY_KEY_COLUMN else f"COALESCE(MAX({quote(col)}), '')"
            for col in self.expected_columns
        )
        column_list = ", ".join(quote(col) for col in self.expected_columns)
        await conn.execute(
            text(
                f"INSERT INTO {quote(shadow_name)} ({column_list}) "
                f"SELECT {value_parts} FROM (SELECT {select_parts} FROM {quote(table_name)}) AS src "
                f"WHERE {quote(PRIMARY_KEY_COLUMN)} IS NOT NULL "
                f"GROUP BY {quote(PRIMARY_KEY_COLUMN)}"
            )
        )

        await conn.execute(text(f"DROP TABLE {quote(table_name)}"))
        await conn.execute(text(f"ALTER TABLE {quote(shadow_name)} RENAME TO {quote(table_name)}"))

        rows_after = (await conn.execute(text(f"SELECT COUNT(*) FROM {quote(table_name)}"))).scalar_one()
        report = SchemaReport(
            action=SchemaAction.MIGRATED,
            missing_columns=missing,
            dropped_columns=layout.extra(self.expected_columns),
            rows_before=rows_before,
            rows_after=rows_after,
        )
        logger.info(
            "[%s] Migrated %s (missing=%s, dropped=%s, primary_key=%s, rows %d -> %d)",
            self.partition_key,
            table_name,
            list(report.missing_columns),
            list(report.dropped_columns),
            list(layout.primary_key),
            rows_before,
            rows_after,
        )
        return report
