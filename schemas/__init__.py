"""
Pydantic schemas for data validation and serialization.

Schemas:
    source: Airtable bases, tables, fields, field options and record pages
    plan: The immutable SchemaPlan (tables, columns, junction tables)
    snapshot: Fetch, write and run outcomes
    api: HTTP request/response models

Usage:
    from schemas.source import SourceSchema, parse_field_options
    from schemas.plan import SchemaPlan, TablePlan
    from schemas.snapshot import SnapshotResult

Validation:
    Field options are validated per type family when the plan is built;
    an invalid options blob aborts planning.
"""

__all__ = [
    "SourceSchema",
    "SourceTable",
    "SourceField",
    "BaseSummary",
    "RecordPage",
    "SchemaPlan",
    "TablePlan",
    "ColumnPlan",
    "JoinPlan",
    "TableFetchResult",
    "TableWriteResult",
    "TableReport",
    "SnapshotResult",
    "GenerateSnapshotRequest",
    "ListBasesRequest",
]
