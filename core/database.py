"""
SQLite engine factory for snapshot files
"""

from pathlib import Path
from typing import Union

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def create_snapshot_engine(db_path: Union[str, Path]) -> AsyncEngine:
    """
    Create an async engine bound to a single snapshot file.
    
    The pysqlite driver manages BEGIN on its own and breaks SAVEPOINT
    semantics, so the driver's transaction handling is switched off and
    BEGIN is emitted explicitly when a transaction starts.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{Path(db_path)}",
        echo=settings.ENVIRONMENT == "debug",
        poolclass=NullPool,
        future=True
    )
    
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
    
    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")
    
    logger.debug(f"Created snapshot engine for {db_path}")
    return engine
