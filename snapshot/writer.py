"""
Create snapshot tables and load records into them
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Column, Index, MetaData, Table, TEXT, INTEGER, REAL
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from core.config import settings
from core.exceptions import StructureError, WriteError
from models.base import Base, ColumnType
from models.metadata import AirtableMetaField, AirtableMetaTable
from schemas.plan import (
    JoinPlan,
    SchemaPlan,
    TablePlan,
    JUNCTION_SOURCE_COLUMN,
    JUNCTION_TARGET_COLUMN,
)
from schemas.snapshot import TableWriteResult
from snapshot import type_mapping
import logging

logger = logging.getLogger(__name__)

SQL_TYPES = {
    ColumnType.TEXT: TEXT,
    ColumnType.INTEGER: INTEGER,
    ColumnType.REAL: REAL,
}


class SnapshotWriter:
    """
    Writes one snapshot file from a SchemaPlan.

    Ensures:
    - Every table is created before any record is loaded
    - Each batch of records runs in one transaction
    - A bad row is skipped (savepoint rollback) without losing the batch
    - Junction rows are only written for records whose main row was written
    """

    def __init__(
        self,
        engine: AsyncEngine,
        plan: SchemaPlan,
        batch_size: Optional[int] = None
    ):
        self.engine = engine
        self.plan = plan
        self.batch_size = max(1, batch_size or settings.SNAPSHOT_BATCH_SIZE)
        self.metadata = MetaData()
        self._data_tables: Dict[str, Table] = {}
        self._join_tables: Dict[str, Table] = {}
        self._build_tables()

    def _build_tables(self):
        try:
            for table_plan in self.plan.tables:
                columns = [
                    Column(
                        column.storage_name,
                        SQL_TYPES[column.column_type],
                        primary_key=column.is_synthetic_key,
                        nullable=not column.is_synthetic_key
                    )
                    for column in table_plan.columns
                ]
                self._data_tables[table_plan.table_id] = Table(
                    table_plan.storage_name, self.metadata, *columns
                )

            for join in self.plan.joins:
                name = join.join_table_name
                self._join_tables[name] = Table(
                    name,
                    self.metadata,
                    Column(JUNCTION_SOURCE_COLUMN, TEXT, primary_key=True, nullable=False),
                    Column(JUNCTION_TARGET_COLUMN, TEXT, primary_key=True, nullable=False),
                    Index(f"idx_{name}_source", JUNCTION_SOURCE_COLUMN),
                    Index(f"idx_{name}_target", JUNCTION_TARGET_COLUMN),
                )
        except SQLAlchemyError as e:
            raise StructureError(
                "Failed to define snapshot tables",
                context={"base_id": self.plan.base_id},
                original_exception=e
            )

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    async def create_metadata_tables(self):
        """Create and fill _airtable_meta_tables and _airtable_meta_fields"""
        table_rows, field_rows = self._metadata_rows()

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                if table_rows:
                    await conn.execute(AirtableMetaTable.__table__.insert(), table_rows)
                if field_rows:
                    await conn.execute(AirtableMetaField.__table__.insert(), field_rows)
        except SQLAlchemyError as e:
            raise StructureError(
                "Failed to create metadata tables",
                context={"base_id": self.plan.base_id},
                original_exception=e
            )

        logger.info(
            f"Created metadata tables: {len(table_rows)} tables, {len(field_rows)} fields",
            extra={"event": "metadata_created"}
        )

    def _metadata_rows(self):
        table_rows = []
        field_rows = []

        for table_plan in self.plan.tables:
            table_rows.append({
                "id": table_plan.table_id,
                "name": table_plan.source_name,
                "sqlite_name": table_plan.storage_name,
                "primary_field_id": table_plan.primary_field_id,
            })

            key = table_plan.key_column
            field_rows.append(self._field_row(
                table_plan, key.field_id, key.source_name, key.storage_name,
                key.type_tag, None, key.description, is_primary_key=1
            ))

            entries = sorted(
                list(table_plan.value_columns) + list(table_plan.joins),
                key=lambda entry: entry.position
            )
            for entry in entries:
                if isinstance(entry, JoinPlan):
                    field_rows.append(self._field_row(
                        table_plan, entry.field_id, entry.source_name, entry.storage_field_name,
                        entry.type_tag, entry.raw_options, entry.description,
                        junction_table_name=entry.join_table_name
                    ))
                else:
                    field_rows.append(self._field_row(
                        table_plan, entry.field_id, entry.source_name, entry.storage_name,
                        entry.type_tag, entry.raw_options, entry.description
                    ))

        return table_rows, field_rows

    @staticmethod
    def _field_row(
        table_plan: TablePlan,
        field_id: str,
        name: str,
        sqlite_name: str,
        type_tag: str,
        raw_options: Optional[Dict[str, Any]],
        description: Optional[str],
        is_primary_key: int = 0,
        junction_table_name: Optional[str] = None
    ) -> Dict[str, Any]:
        return {
            "id": field_id,
            "table_id": table_plan.table_id,
            "name": name,
            "sqlite_name": sqlite_name,
            "type": type_tag,
            "options_json": type_mapping.to_json(raw_options) if raw_options is not None else None,
            "airtable_description": description or None,
            "is_primary_key": is_primary_key,
            "junction_table_name": junction_table_name,
        }

    async def create_data_tables(self):
        """Create one table per TablePlan and one junction table per JoinPlan"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(self.metadata.create_all, checkfirst=False)
        except SQLAlchemyError as e:
            raise StructureError(
                "Failed to create data tables",
                context={
                    "base_id": self.plan.base_id,
                    "tables": len(self._data_tables),
                    "junction_tables": len(self._join_tables),
                },
                original_exception=e
            )

        logger.info(
            f"Created {len(self._data_tables)} data tables and "
            f"{len(self._join_tables)} junction tables",
            extra={"event": "data_tables_created"}
        )

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    async def write_table_data(
        self,
        table_plan: TablePlan,
        records: List[Dict[str, Any]]
    ) -> TableWriteResult:
        """
        Insert records into a data table and its junction tables.

        Args:
            table_plan: Plan of the table the records belong to
            records: Raw Airtable records ({"id", "fields"})

        Returns:
            Counters for this call only
        """
        result = TableWriteResult(table_name=table_plan.storage_name)

        for batch_index, start in enumerate(range(0, len(records), self.batch_size)):
            batch = records[start:start + self.batch_size]

            try:
                async with self.engine.begin() as conn:
                    batch_result = await self._write_batch(conn, table_plan, batch)
            except SQLAlchemyError as e:
                error = WriteError(
                    "Batch transaction failed and was rolled back",
                    context={
                        "table_name": table_plan.storage_name,
                        "batch_index": batch_index,
                        "batch_size": len(batch),
                    },
                    original_exception=e
                )
                logger.error(error.message, extra={"error_context": error.to_dict()})
                result.rows_failed += len(batch)
                result.failed_record_ids.extend(r.get("id") for r in batch)
                continue

            result.rows_written += batch_result.rows_written
            result.rows_failed += batch_result.rows_failed
            result.links_written += batch_result.links_written
            result.links_failed += batch_result.links_failed
            result.failed_record_ids.extend(batch_result.failed_record_ids)

        logger.info(
            f"Main Table ('{table_plan.storage_name}') Inserts: "
            f"{result.rows_written} successful, {result.rows_failed} failed. "
            f"Junction Inserts: {result.links_written} successful, {result.links_failed} failed.",
            extra={"event": "table_written", "table_name": table_plan.storage_name}
        )
        return result

    async def _write_batch(
        self,
        conn: AsyncConnection,
        table_plan: TablePlan,
        batch: List[Dict[str, Any]]
    ) -> TableWriteResult:
        result = TableWriteResult(table_name=table_plan.storage_name)
        table = self._data_tables[table_plan.table_id]

        for record in batch:
            record_id = record.get("id")
            fields = record.get("fields") or {}

            try:
                row = self._encode_row(table_plan, record_id, fields)
            except WriteError as e:
                self._record_failure(result, table_plan, record, e)
                continue

            try:
                async with conn.begin_nested():
                    await conn.execute(table.insert(), row)
            except SQLAlchemyError as e:
                self._record_failure(result, table_plan, record, e, row=row)
                continue

            result.rows_written += 1

            for join in table_plan.joins:
                await self._write_links(conn, result, join, record_id, fields.get(join.source_name))

        return result

    def _encode_row(
        self,
        table_plan: TablePlan,
        record_id: Optional[str],
        fields: Dict[str, Any]
    ) -> Dict[str, Any]:
        row = {table_plan.key_column.storage_name: record_id}

        for column in table_plan.value_columns:
            raw_value = fields.get(column.source_name)
            try:
                row[column.storage_name] = type_mapping.encode(
                    raw_value, column.type_tag, column.options
                )
            except (ValueError, TypeError) as e:
                raise WriteError(
                    f"Cannot encode value for field '{column.source_name}'",
                    context={
                        "field_name": column.source_name,
                        "field_type": column.type_tag,
                        "raw_value": raw_value,
                    },
                    original_exception=e
                )

        return row

    async def _write_links(
        self,
        conn: AsyncConnection,
        result: TableWriteResult,
        join: JoinPlan,
        record_id: str,
        value: Any
    ):
        if value is None:
            return
        if not isinstance(value, list):
            logger.warning(
                f"Ignoring non-list value for link field '{join.source_name}' "
                f"on record {record_id}: {value!r}"
            )
            return

        targets = []
        for item in value:
            target = item.get("id") if isinstance(item, dict) else item
            if target is not None and target != "":
                targets.append(str(target))
        pairs = [
            {JUNCTION_SOURCE_COLUMN: record_id, JUNCTION_TARGET_COLUMN: target}
            for target in dict.fromkeys(targets)
        ]
        if not pairs:
            return

        stmt = insert(self._join_tables[join.join_table_name]).on_conflict_do_nothing()
        try:
            async with conn.begin_nested():
                await conn.execute(stmt, pairs)
        except SQLAlchemyError as e:
            result.links_failed += len(pairs)
            logger.error(
                f"Failed inserting into junction table {join.join_table_name}: {str(e)}",
                extra={"error_context": {
                    "event": "link_insert_failed",
                    "junction_table": join.join_table_name,
                    "source_id": record_id,
                    "target_ids": targets,
                }}
            )
            return

        result.links_written += len(pairs)

    @staticmethod
    def _record_failure(
        result: TableWriteResult,
        table_plan: TablePlan,
        record: Dict[str, Any],
        error: Exception,
        row: Optional[Dict[str, Any]] = None
    ):
        result.rows_failed += 1
        result.failed_record_ids.append(record.get("id"))

        error_context = {
            "event": "row_insert_failed",
            "table_name": table_plan.storage_name,
            "record_id": record.get("id"),
            "error_type": type(error).__name__,
            "fields": record.get("fields"),
        }
        if isinstance(error, WriteError):
            error_context["field_name"] = error.context.get("field_name")
            error_context["raw_value"] = error.context.get("raw_value")
        if row is not None:
            error_context["row"] = row

        logger.error(
            f"Skipping record {record.get('id')} in table {table_plan.storage_name}: "
            f"{getattr(error, 'message', None) or str(error)}",
            extra={"error_context": error_context}
        )
