from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class ColumnType(str, enum.Enum):
    """SQLite storage classes used for snapshot columns"""
    TEXT = "TEXT"
    INTEGER = "INTEGER"
    REAL = "REAL"


class SnapshotState(str, enum.Enum):
    """Snapshot pipeline state"""
    INIT = "init"
    SCHEMA_FETCHED = "schema_fetched"
    PLAN_BUILT = "plan_built"
    STRUCTURE_CREATED = "structure_created"
    FETCHING = "fetching"
    WRITING = "writing"
    FINALIZED = "finalized"
    FAILED = "failed"


class TableStatus(str, enum.Enum):
    """Outcome of processing one source table"""
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
