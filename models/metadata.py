from sqlalchemy import Column, String, Integer, Text, ForeignKey
from models.base import Base


class AirtableMetaTable(Base):
    """
    One row per source table.
    
    Purpose:
    - Map Airtable table ids and names to their SQLite table names
    - Remember the primary field for downstream viewers
    """
    __tablename__ = "_airtable_meta_tables"
    
    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    sqlite_name = Column(Text, nullable=False)
    primary_field_id = Column(Text, nullable=True)


class AirtableMetaField(Base):
    """
    One row per field, plus one for the synthetic ``id`` key of every table.
    
    Design:
    - sqlite_name is the de-duplicated column name (for link fields it is the
      name used to build the junction table name)
    - junction_table_name is only set for multipleRecordLinks fields
    - options_json holds the untouched options blob as compact JSON
    """
    __tablename__ = "_airtable_meta_fields"
    
    id = Column(Text, primary_key=True)
    table_id = Column(Text, ForeignKey("_airtable_meta_tables.id"), nullable=False)
    name = Column(Text, nullable=False)
    sqlite_name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)
    options_json = Column(Text, nullable=True)
    airtable_description = Column(Text, nullable=True)
    is_primary_key = Column(Integer, default=0)
    junction_table_name = Column(Text, nullable=True)
