"""
Schema planner: derives the SQLite layout of a snapshot from an Airtable base schema
"""

from typing import List, Set

from pydantic import ValidationError as PydanticValidationError
from core.exceptions import PlanError
from models.base import ColumnType
from schemas.plan import (
    ColumnPlan,
    JoinPlan,
    SchemaPlan,
    TablePlan,
    SYNTHETIC_KEY_NAME,
)
from schemas.source import SourceSchema, SourceTable, LinkOptions, LINK_TYPE, parse_field_options
from snapshot import naming, type_mapping
import logging

logger = logging.getLogger(__name__)


def synthetic_key_column(table_id: str) -> ColumnPlan:
    """The ``id`` column holding the Airtable record id"""
    return ColumnPlan(
        field_id=f"synthetic_pk_id_for_{table_id}",
        source_name="Record ID",
        storage_name=SYNTHETIC_KEY_NAME,
        type_tag="id",
        column_type=ColumnType.TEXT,
        description="Airtable Record ID (Primary Key)",
        is_synthetic_key=True,
    )


class SchemaPlanner:
    """
    Builds the immutable SchemaPlan for a base.

    Responsibilities:
    - Resolve unique table names across the base
    - Resolve unique column names per table, with ``id`` reserved
    - Split link fields off into junction tables
    - Validate field options per type family (fail-fast for the whole plan)
    """

    def plan(self, schema: SourceSchema) -> SchemaPlan:
        table_names = naming.deduplicate(
            (table.name for table in schema.tables),
            sanitizer=naming.sanitize_table_name
        )
        used_join_names: Set[str] = set()
        warnings: List[str] = []
        tables = []

        for source_table, storage_name in zip(schema.tables, table_names):
            if storage_name != naming.sanitize_table_name(source_table.name):
                logger.warning(
                    f"Table '{source_table.name}' collides with another table, "
                    f"stored as '{storage_name}'"
                )
            tables.append(
                self._plan_table(source_table, storage_name, used_join_names, warnings)
            )

        plan = SchemaPlan(base_id=schema.base_id, tables=tuple(tables), warnings=tuple(warnings))
        logger.info(
            f"Planned {len(plan.tables)} tables and {len(plan.joins)} junction tables "
            f"for base {schema.base_id}",
            extra={"event": "plan_built", "warnings": len(plan.warnings)}
        )
        return plan

    def _plan_table(
        self,
        source_table: SourceTable,
        storage_name: str,
        used_join_names: Set[str],
        warnings: List[str]
    ) -> TablePlan:
        field_names = naming.deduplicate(
            (field.name for field in source_table.fields),
            reserved=[SYNTHETIC_KEY_NAME]
        )

        columns = [synthetic_key_column(source_table.id)]
        joins = []

        for position, (field, field_storage_name) in enumerate(zip(source_table.fields, field_names)):
            try:
                options = parse_field_options(field.type, field.options)
            except PydanticValidationError as e:
                raise PlanError(
                    f"Invalid options for field '{field.name}' in table '{source_table.name}'",
                    context={
                        "table_id": source_table.id,
                        "table_name": source_table.name,
                        "field_id": field.id,
                        "field_name": field.name,
                        "field_type": field.type,
                    },
                    original_exception=e
                )

            if field.type == LINK_TYPE:
                joins.append(self._plan_join(
                    source_table, storage_name, field, field_storage_name,
                    options, position, used_join_names
                ))
                continue

            if not type_mapping.is_known_type(field.type):
                warnings.append(
                    f"Unknown field type '{field.type}' for field '{field.name}' "
                    f"in table '{source_table.name}'; stored as TEXT"
                )

            columns.append(ColumnPlan(
                field_id=field.id,
                source_name=field.name,
                storage_name=field_storage_name,
                type_tag=field.type,
                column_type=type_mapping.column_type(field.type, options),
                options=options,
                raw_options=field.options,
                description=field.description,
                is_primary_field=field.id == source_table.primary_field_id,
                position=position,
            ))

        return TablePlan(
            table_id=source_table.id,
            source_name=source_table.name,
            storage_name=storage_name,
            primary_field_id=source_table.primary_field_id,
            columns=tuple(columns),
            joins=tuple(joins),
        )

    def _plan_join(
        self,
        source_table: SourceTable,
        table_storage_name: str,
        field,
        field_storage_name: str,
        options: LinkOptions,
        position: int,
        used_join_names: Set[str]
    ) -> JoinPlan:
        join_name = naming.junction_table_name(table_storage_name, field_storage_name)
        if join_name.lower() in used_join_names:
            base = join_name
            suffix = 1
            join_name = f"{base}_{suffix}"
            while join_name.lower() in used_join_names:
                suffix += 1
                join_name = f"{base}_{suffix}"
            logger.warning(f"Junction table name collision, using '{join_name}'")
        used_join_names.add(join_name.lower())

        return JoinPlan(
            table_id=source_table.id,
            table_storage_name=table_storage_name,
            field_id=field.id,
            source_name=field.name,
            storage_field_name=field_storage_name,
            join_table_name=join_name,
            linked_table_id=options.linked_table_id,
            type_tag=field.type,
            raw_options=field.options,
            description=field.description,
            position=position,
        )
