"""
SQLAlchemy ORM models for the snapshot metadata tables.

Data tables and junction tables are generated per base from the schema
plan (see snapshot.writer); only the two fixed metadata tables are
declared here.

Models:
    base: Base declarative class and shared enums (ColumnType, SnapshotState, TableStatus)
    metadata: _airtable_meta_tables and _airtable_meta_fields

Usage:
    from models.metadata import AirtableMetaTable, AirtableMetaField
    from models.base import ColumnType, SnapshotState

Relationships:
    - AirtableMetaTable → AirtableMetaField (one-to-many via table_id)
"""

__all__ = [
    "Base",
    "ColumnType",
    "SnapshotState",
    "TableStatus",
    "AirtableMetaTable",
    "AirtableMetaField",
]
