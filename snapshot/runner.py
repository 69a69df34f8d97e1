"""
Snapshot Runner - orchestrates schema fetch, planning, table creation and loading.

States:
    INIT → SCHEMA_FETCHED → PLAN_BUILT → STRUCTURE_CREATED
         → (FETCHING → WRITING)* → FINALIZED

Any fatal error moves the run to FAILED, disposes the storage engine and
deletes the partially written file before the error is re-raised. Table
fetch failures and row failures are not fatal; they are reported on the
SnapshotResult.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional
import asyncio
import shutil
import tempfile

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine
from core.config import settings
from core.database import create_snapshot_engine
from core.exceptions import (
    ConfigurationError,
    SchemaFetchError,
    SnapshotException,
    StructureError,
)
from models.base import SnapshotState, TableStatus
from schemas.plan import SchemaPlan, TablePlan
from schemas.snapshot import SnapshotResult, TableReport
from schemas.source import SourceSchema
from snapshot.client import AirtableClient
from snapshot.fetcher import PaginatedFetcher
from snapshot.naming import sanitize_base_name
from snapshot.planner import SchemaPlanner
from snapshot.writer import SnapshotWriter
import logging

logger = logging.getLogger(__name__)


class SnapshotRunner:
    """
    Builds one snapshot file for one base.

    Responsibilities:
    - Sequence the pipeline strictly (no parallel fetches or writes)
    - Aggregate per-table fetch and write outcomes into the result
    - Leave nothing behind when a fatal step fails
    """

    def __init__(
        self,
        client: AirtableClient,
        output_dir: Optional[str] = None,
        batch_size: Optional[int] = None,
        page_size: Optional[int] = None,
        planner: Optional[SchemaPlanner] = None
    ):
        self.client = client
        self.output_dir = output_dir if output_dir is not None else settings.SNAPSHOT_OUTPUT_DIR
        self.batch_size = batch_size
        self.page_size = page_size
        self.planner = planner or SchemaPlanner()
        self.state = SnapshotState.INIT

        self._engine: Optional[AsyncEngine] = None
        self._work_dir: Optional[Path] = None

    def _transition(self, state: SnapshotState):
        logger.info(
            f"Snapshot state: {self.state.value} -> {state.value}",
            extra={"event": "state_change", "from_state": self.state.value, "to_state": state.value}
        )
        self.state = state

    async def run(self, base_id: str, base_name: Optional[str] = None) -> SnapshotResult:
        """
        Run the full pipeline for a base.

        Args:
            base_id: Airtable base id (appXXXXXXXXXXXXXX)
            base_name: Optional display name used for the file name

        Returns:
            SnapshotResult pointing at the finished file

        Raises:
            ConfigurationError: If base_id is missing
            SchemaFetchError: If the base schema cannot be retrieved
            PlanError: If the schema plan cannot be built
            StructureError: If tables cannot be created
            SnapshotException: For any other fatal error
        """
        self.state = SnapshotState.INIT
        logger.info(f"--- Starting Snapshot Generation for base {base_id} ---")

        try:
            if not base_id:
                raise ConfigurationError("Base ID is required.")

            schema = await self._fetch_schema(base_id)
            self._transition(SnapshotState.SCHEMA_FETCHED)

            plan = self.planner.plan(schema)
            self._transition(SnapshotState.PLAN_BUILT)

            resolved_name = sanitize_base_name(base_name or schema.name or "", settings.DEFAULT_BASE_NAME)
            db_path = self._allocate_file(resolved_name)

            writer = await self._create_structure(plan, db_path)
            self._transition(SnapshotState.STRUCTURE_CREATED)

            reports: List[TableReport] = []
            for table_plan in plan.tables:
                reports.append(await self._process_table(base_id, table_plan, writer))

            await self._dispose_engine()
            self._transition(SnapshotState.FINALIZED)

        except SnapshotException as e:
            await self._fail(e)
            raise

        except asyncio.CancelledError:
            await self._fail(None)
            raise

        except Exception as e:
            error = SnapshotException(
                "Unexpected error in snapshot pipeline",
                context={"base_id": base_id, "state": self.state.value},
                original_exception=e
            )
            await self._fail(error)
            raise error

        result = SnapshotResult(
            base_id=base_id,
            base_name=resolved_name,
            file_name=db_path.name,
            file_path=db_path,
            state=self.state,
            tables=reports,
            warnings=list(plan.warnings),
        )
        logger.info(f"Snapshot completed: {result.summary()}", extra={"event": "snapshot_finalized"})
        return result

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _fetch_schema(self, base_id: str) -> SourceSchema:
        logger.info("Fetching base schema...")
        try:
            schema = await self.client.get_base_schema(base_id)
        except (SnapshotException, httpx.HTTPError, ValueError) as e:
            raise SchemaFetchError(
                f"Failed to fetch schema for base {base_id}: {getattr(e, 'message', None) or str(e)}",
                context={"base_id": base_id},
                original_exception=e
            )
        logger.info(f"Fetched schema for {len(schema.tables)} tables.")
        return schema

    def _allocate_file(self, resolved_name: str) -> Path:
        if self.output_dir:
            Path(self.output_dir).mkdir(parents=True, exist_ok=True)
        self._work_dir = Path(tempfile.mkdtemp(prefix="airtable-snapshot-", dir=self.output_dir or None))
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        db_path = self._work_dir / f"{resolved_name}_{timestamp}.sqlite"
        logger.info(f"Snapshot will be created at: {db_path}")
        return db_path

    async def _create_structure(self, plan: SchemaPlan, db_path: Path) -> SnapshotWriter:
        try:
            self._engine = create_snapshot_engine(db_path)
        except Exception as e:
            raise StructureError(
                "Failed to open snapshot file",
                context={"db_path": str(db_path)},
                original_exception=e
            )

        writer = SnapshotWriter(self._engine, plan, batch_size=self.batch_size)
        await writer.create_metadata_tables()
        await writer.create_data_tables()
        return writer

    async def _process_table(
        self,
        base_id: str,
        table_plan: TablePlan,
        writer: SnapshotWriter
    ) -> TableReport:
        logger.info(
            f"Fetching and populating data for table: '{table_plan.source_name}' "
            f"(SQLite: '{table_plan.storage_name}')"
        )

        self._transition(SnapshotState.FETCHING)
        fetcher = PaginatedFetcher(self.client, base_id, page_size=self.page_size)
        fetched = await fetcher.fetch_all(table_plan.table_id)

        self._transition(SnapshotState.WRITING)
        written = await writer.write_table_data(table_plan, fetched.records)

        if fetched.error is not None and not fetched.records:
            status = TableStatus.FAILED
        elif fetched.error is not None or written.rows_failed or written.links_failed:
            status = TableStatus.PARTIAL
        else:
            status = TableStatus.SUCCESS

        report = TableReport(
            table_id=table_plan.table_id,
            source_name=table_plan.source_name,
            storage_name=table_plan.storage_name,
            status=status,
            records_fetched=len(fetched.records),
            pages_fetched=fetched.pages_fetched,
            fetch_error=fetched.error,
            rows_written=written.rows_written,
            rows_failed=written.rows_failed,
            links_written=written.links_written,
            links_failed=written.links_failed,
            failed_record_ids=written.failed_record_ids,
        )

        if fetched.error is not None:
            logger.warning(
                f"Table '{table_plan.source_name}' is incomplete: {fetched.error}",
                extra={"event": "table_degraded", "table_id": table_plan.table_id}
            )
        return report

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    async def _dispose_engine(self):
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info("Database closed.")

    async def _fail(self, error: Optional[SnapshotException]):
        failed_in = self.state
        self._transition(SnapshotState.FAILED)

        if error is not None:
            error.context.setdefault("state", failed_in.value)
            logger.error(
                f"Snapshot pipeline failed in state {failed_in.value}: {error.message}",
                extra={"error_context": error.to_dict()}
            )
        else:
            logger.warning(f"Snapshot cancelled in state {failed_in.value}")

        try:
            await self._dispose_engine()
        finally:
            if self._work_dir is not None:
                shutil.rmtree(self._work_dir, ignore_errors=True)
                logger.info(f"Deleted partial snapshot: {self._work_dir}")
                self._work_dir = None
