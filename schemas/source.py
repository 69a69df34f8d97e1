"""
Pydantic schemas for the Airtable metadata API (bases, tables, fields)
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Dict, Any, Union


# ============================================================================
# Field Options (one variant per type family)
# ============================================================================

class NumericOptions(BaseModel):
    """Options of number, currency, percent and duration fields"""
    precision: int = Field(default=0, ge=0)

    class Config:
        extra = "allow"
        frozen = True


class Choice(BaseModel):
    id: Optional[str] = None
    name: str
    color: Optional[str] = None


class ChoiceOptions(BaseModel):
    """Options of singleSelect and multipleSelects fields"""
    choices: List[Choice] = Field(default_factory=list)

    class Config:
        extra = "allow"
        frozen = True


class LinkOptions(BaseModel):
    """Options of multipleRecordLinks fields"""
    linked_table_id: str = Field(..., alias="linkedTableId", min_length=1)
    inverse_link_field_id: Optional[str] = Field(None, alias="inverseLinkFieldId")
    prefers_single_record_link: bool = Field(False, alias="prefersSingleRecordLink")
    is_reversed: bool = Field(False, alias="isReversed")

    class Config:
        extra = "allow"
        frozen = True
        populate_by_name = True


class GenericOptions(BaseModel):
    """Options of every other field type, kept as-is"""

    class Config:
        extra = "allow"
        frozen = True


FieldOptions = Union[NumericOptions, ChoiceOptions, LinkOptions, GenericOptions]

NUMERIC_TYPES = frozenset({"number", "currency", "percent", "duration"})
CHOICE_TYPES = frozenset({"singleSelect", "multipleSelects"})
LINK_TYPE = "multipleRecordLinks"


def parse_field_options(type_tag: str, raw: Optional[Dict[str, Any]]) -> FieldOptions:
    """
    Validate a raw options blob against the variant for its type family.

    Raises:
        pydantic.ValidationError: If the blob does not fit its variant
    """
    raw = raw or {}
    if type_tag in NUMERIC_TYPES:
        return NumericOptions.model_validate(raw)
    if type_tag in CHOICE_TYPES:
        return ChoiceOptions.model_validate(raw)
    if type_tag == LINK_TYPE:
        return LinkOptions.model_validate(raw)
    return GenericOptions.model_validate(raw)


# ============================================================================
# Base Schema
# ============================================================================

class SourceField(BaseModel):
    """A field as returned by GET /meta/bases/{baseId}/tables"""
    id: str
    name: str
    type: str
    description: Optional[str] = None
    options: Optional[Dict[str, Any]] = None

    class Config:
        extra = "ignore"


class SourceTable(BaseModel):
    id: str
    name: str
    primary_field_id: Optional[str] = Field(None, alias="primaryFieldId")
    description: Optional[str] = None
    fields: List[SourceField] = Field(default_factory=list)

    class Config:
        extra = "ignore"
        populate_by_name = True


class SourceSchema(BaseModel):
    """
    Complete schema of one base.

    The tables endpoint does not return the base name; callers fill it in
    when they know it.
    """
    base_id: str
    name: Optional[str] = None
    tables: List[SourceTable] = Field(default_factory=list)


class BaseSummary(BaseModel):
    """A base as returned by GET /meta/bases"""
    id: str
    name: str
    permission_level: Optional[str] = Field(None, alias="permissionLevel")

    class Config:
        extra = "ignore"
        populate_by_name = True


# ============================================================================
# Records
# ============================================================================

class RecordPage(BaseModel):
    """One page of GET /{baseId}/{tableId}"""
    records: List[Dict[str, Any]] = Field(default_factory=list)
    offset: Optional[str] = None

    @field_validator("records", mode="before")
    @classmethod
    def default_records(cls, v):
        """Treat a null records list as an empty page"""
        return v or []
