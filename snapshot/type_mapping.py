"""
Airtable field type → SQLite column type and value encoding.

Every supported type tag has one entry in TYPE_RULES pairing its column
type with the function that turns an API value into something SQLite can
store. Tags missing from the table use DEFAULT_RULE (TEXT).
"""

import json
import math
from typing import Any, Callable, Dict, NamedTuple, Optional, Union

from models.base import ColumnType
from schemas.source import FieldOptions, NumericOptions, LINK_TYPE
import logging

logger = logging.getLogger(__name__)

Storable = Union[None, int, float, str]


def to_json(value: Any) -> str:
    """Compact JSON, the canonical text form for multi-valued cells"""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


# ============================================================================
# Encoders
# ============================================================================

def encode_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, dict, bool)):
        return to_json(value)
    return str(value)


def encode_json(value: Any) -> str:
    return to_json(value)


def encode_boolean(value: Any) -> int:
    return 1 if value else 0


def encode_collaborator(value: Any) -> str:
    """Best human-readable identifier: name, then email, then user id"""
    if isinstance(value, dict):
        identifier = value.get("name") or value.get("email") or value.get("id")
        return encode_text(identifier) if identifier is not None else to_json(value)
    return encode_text(value)


def encode_number(value: Any) -> Union[int, float]:
    """
    Coerce to a finite number.

    Raises:
        ValueError: If the value is not numeric
    """
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    elif isinstance(value, str):
        number = float(value.strip())
    else:
        raise ValueError(f"Not a number: {value!r}")

    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {value!r}")
    return int(number) if number.is_integer() and isinstance(value, str) else number


def encode_integer(value: Any) -> int:
    number = encode_number(value)
    if isinstance(number, float):
        if not number.is_integer():
            raise ValueError(f"Not an integer: {value!r}")
        return int(number)
    return number


def encode_timestamp(value: Any) -> str:
    """Dates arrive as ISO 8601 strings, which already sort correctly"""
    return value if isinstance(value, str) else encode_text(value)


# ============================================================================
# Rule table
# ============================================================================

def numeric_column_type(options: Optional[FieldOptions]) -> ColumnType:
    precision = options.precision if isinstance(options, NumericOptions) else 0
    return ColumnType.REAL if precision > 0 else ColumnType.INTEGER


class TypeRule(NamedTuple):
    column_type: Union[ColumnType, Callable[[Optional[FieldOptions]], ColumnType]]
    encode: Callable[[Any], Storable]


TEXT_RULE = TypeRule(ColumnType.TEXT, encode_text)
JSON_RULE = TypeRule(ColumnType.TEXT, encode_json)
COLLABORATOR_RULE = TypeRule(ColumnType.TEXT, encode_collaborator)
COUNTER_RULE = TypeRule(ColumnType.INTEGER, encode_integer)
NUMERIC_RULE = TypeRule(numeric_column_type, encode_number)
BOOLEAN_RULE = TypeRule(ColumnType.INTEGER, encode_boolean)
TIMESTAMP_RULE = TypeRule(ColumnType.TEXT, encode_timestamp)

DEFAULT_RULE = TEXT_RULE

TYPE_RULES: Dict[str, TypeRule] = {
    # text-like
    "singleLineText": TEXT_RULE,
    "multilineText": TEXT_RULE,
    "richText": TEXT_RULE,
    "email": TEXT_RULE,
    "url": TEXT_RULE,
    "phoneNumber": TEXT_RULE,
    "barcode": TEXT_RULE,
    "button": TEXT_RULE,
    "externalSyncSource": TEXT_RULE,
    "aiText": TEXT_RULE,
    # choices
    "singleSelect": TEXT_RULE,
    "multipleSelects": JSON_RULE,
    # computed
    "formula": TEXT_RULE,
    "rollup": TEXT_RULE,
    "lookup": TEXT_RULE,
    "multipleLookupValues": TEXT_RULE,
    # collaborators
    "singleCollaborator": COLLABORATOR_RULE,
    "createdBy": COLLABORATOR_RULE,
    "lastModifiedBy": COLLABORATOR_RULE,
    "multipleCollaborators": JSON_RULE,
    # attachments
    "attachment": JSON_RULE,
    "multipleAttachments": JSON_RULE,
    # counters
    "autoNumber": COUNTER_RULE,
    "autonumber": COUNTER_RULE,
    "count": COUNTER_RULE,
    "rating": COUNTER_RULE,
    # numeric
    "number": NUMERIC_RULE,
    "currency": NUMERIC_RULE,
    "percent": NUMERIC_RULE,
    "duration": NUMERIC_RULE,
    # boolean
    "checkbox": BOOLEAN_RULE,
    # dates
    "date": TIMESTAMP_RULE,
    "dateTime": TIMESTAMP_RULE,
    "createdTime": TIMESTAMP_RULE,
    "lastModifiedTime": TIMESTAMP_RULE,
    # links become junction tables; this entry only covers text fallback
    LINK_TYPE: JSON_RULE,
}


def is_known_type(type_tag: str) -> bool:
    return type_tag in TYPE_RULES


def resolve_rule(type_tag: str, warn: bool = True) -> TypeRule:
    rule = TYPE_RULES.get(type_tag)
    if rule is None:
        if warn:
            logger.warning(f"Unknown Airtable type: {type_tag}. Defaulting to TEXT.")
        return DEFAULT_RULE
    return rule


def column_type(type_tag: str, options: Optional[FieldOptions] = None) -> ColumnType:
    rule = resolve_rule(type_tag)
    if callable(rule.column_type):
        return rule.column_type(options)
    return rule.column_type


def encode(value: Any, type_tag: str, options: Optional[FieldOptions] = None) -> Storable:
    """
    Convert an API cell value for storage.

    None stays None. Raises ValueError for values that cannot be coerced
    to the column's type (e.g. text in a number field).
    """
    if value is None:
        return None
    return resolve_rule(type_tag, warn=False).encode(value)
