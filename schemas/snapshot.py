"""
Pydantic schemas for fetch, write and run outcomes
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from pathlib import Path
from models.base import SnapshotState, TableStatus
import shutil
import logging

logger = logging.getLogger(__name__)


class TableFetchResult(BaseModel):
    """Records retrieved for one table; error is set when pagination stopped early"""
    table_id: str
    records: List[Dict[str, Any]] = Field(default_factory=list)
    pages_fetched: int = 0
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.error is None


class TableWriteResult(BaseModel):
    """Counters returned by one write_table_data call"""
    table_name: str
    rows_written: int = 0
    rows_failed: int = 0
    links_written: int = 0
    links_failed: int = 0
    failed_record_ids: List[Optional[str]] = Field(default_factory=list)


class TableReport(BaseModel):
    """Fetch and write outcome for one source table"""
    table_id: str
    source_name: str
    storage_name: str
    status: TableStatus = TableStatus.SUCCESS
    records_fetched: int = 0
    pages_fetched: int = 0
    fetch_error: Optional[str] = None
    rows_written: int = 0
    rows_failed: int = 0
    links_written: int = 0
    links_failed: int = 0
    failed_record_ids: List[Optional[str]] = Field(default_factory=list)


class SnapshotResult(BaseModel):
    """
    Outcome of a finished run: the artifact plus everything that was skipped.

    The artifact lives in its own temporary directory; call discard() once
    it has been delivered.
    """
    base_id: str
    base_name: str
    file_name: str
    file_path: Path
    state: SnapshotState = SnapshotState.FINALIZED
    tables: List[TableReport] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def rows_written(self) -> int:
        return sum(t.rows_written for t in self.tables)

    @property
    def rows_failed(self) -> int:
        return sum(t.rows_failed for t in self.tables)

    @property
    def links_failed(self) -> int:
        return sum(t.links_failed for t in self.tables)

    @property
    def tables_degraded(self) -> int:
        return sum(1 for t in self.tables if t.fetch_error is not None)

    def summary(self) -> Dict[str, Any]:
        return {
            "base_id": self.base_id,
            "file_name": self.file_name,
            "tables": len(self.tables),
            "rows_written": self.rows_written,
            "rows_failed": self.rows_failed,
            "links_failed": self.links_failed,
            "tables_degraded": self.tables_degraded,
            "warnings": len(self.warnings),
        }

    def discard(self):
        """Delete the artifact and its temporary directory"""
        directory = self.file_path.parent
        try:
            shutil.rmtree(directory)
            logger.info(f"Deleted snapshot directory: {directory}")
        except FileNotFoundError:
            pass
