"""
Schema plan: the immutable mapping from an Airtable base to SQLite tables
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Tuple
from models.base import ColumnType
from schemas.source import FieldOptions, GenericOptions

SYNTHETIC_KEY_NAME = "id"
JUNCTION_SOURCE_COLUMN = "source_id"
JUNCTION_TARGET_COLUMN = "target_id"


class ColumnPlan(BaseModel):
    """One column of a data table"""
    field_id: str
    source_name: str
    storage_name: str
    type_tag: str
    column_type: ColumnType
    options: FieldOptions = Field(default_factory=GenericOptions)
    raw_options: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    is_synthetic_key: bool = False
    is_primary_field: bool = False
    position: int = -1

    class Config:
        frozen = True


class JoinPlan(BaseModel):
    """
    Junction table for one multipleRecordLinks field.

    storage_field_name is the de-duplicated name the field would have had
    as a column; it only feeds the junction table name and the metadata.
    """
    table_id: str
    table_storage_name: str
    field_id: str
    source_name: str
    storage_field_name: str
    join_table_name: str
    linked_table_id: str
    type_tag: str
    raw_options: Optional[Dict[str, Any]] = None
    description: Optional[str] = None
    position: int = -1

    class Config:
        frozen = True


class TablePlan(BaseModel):
    table_id: str
    source_name: str
    storage_name: str
    primary_field_id: Optional[str] = None
    columns: Tuple[ColumnPlan, ...] = ()
    joins: Tuple[JoinPlan, ...] = ()

    class Config:
        frozen = True

    @property
    def key_column(self) -> ColumnPlan:
        return self.columns[0]

    @property
    def value_columns(self) -> Tuple[ColumnPlan, ...]:
        """Columns filled from record fields (everything but the synthetic key)"""
        return tuple(c for c in self.columns if not c.is_synthetic_key)


class SchemaPlan(BaseModel):
    """
    Storage layout for one base.

    Built once, fully, before any table is created. warnings collects
    advisory findings such as unknown field types.
    """
    base_id: str
    tables: Tuple[TablePlan, ...] = ()
    warnings: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @property
    def joins(self) -> List[JoinPlan]:
        return [join for table in self.tables for join in table.joins]

    def table(self, table_id: str) -> TablePlan:
        for table_plan in self.tables:
            if table_plan.table_id == table_id:
                return table_plan
        raise KeyError(table_id)
