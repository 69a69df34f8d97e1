"""
Identifier sanitizing and de-duplication for SQLite table and column names.

Naming rules are part of the snapshot file contract: viewers look tables and
columns up by these exact names, so the rules must stay stable.
"""

import re
from typing import Callable, Iterable, List, Set

INVALID_NAME_PLACEHOLDER = "_invalid_name_"

# SQLite refuses to create objects whose name starts with this (any case)
RESERVED_TABLE_PREFIX = "sqlite_"
RESERVED_TABLE_ESCAPE = "t_"

_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_]")
_UNDERSCORE_RUNS = re.compile(r"_{2,}")


def sanitize(name: str) -> str:
    """
    Turn an arbitrary Airtable name into a SQLite identifier.

    Characters outside [A-Za-z0-9_] become underscores, runs of underscores
    collapse to one, and a leading/trailing underscore is dropped unless the
    name is a lone underscore. Names that end up empty map to a fixed
    placeholder.
    """
    if name == INVALID_NAME_PLACEHOLDER:
        return name

    sanitized = _UNDERSCORE_RUNS.sub("_", _INVALID_CHARS.sub("_", name or ""))
    if len(sanitized) > 1:
        sanitized = sanitized.strip("_")

    if not sanitized:
        return INVALID_NAME_PLACEHOLDER
    return sanitized


def sanitize_table_name(name: str) -> str:
    """
    sanitize() for table names.

    Names SQLite reserves for internal objects get a ``t_`` prefix, so
    ``SQLite Export`` is stored as ``t_SQLite_Export``.
    """
    sanitized = sanitize(name)
    if sanitized.lower().startswith(RESERVED_TABLE_PREFIX):
        return f"{RESERVED_TABLE_ESCAPE}{sanitized}"
    return sanitized


def deduplicate(
    names: Iterable[str],
    reserved: Iterable[str] = (),
    sanitizer: Callable[[str], str] = sanitize
) -> List[str]:
    """
    Sanitize names in order and make them unique, case-insensitively.

    A name that collides with a reserved name or with an earlier result is
    suffixed with the lowest free ``_1``, ``_2``, ... The suffix is appended to
    the spelling of the name it collides with, so ``ID`` next to the reserved
    ``id`` becomes ``id_1`` and ``status`` after ``Status`` becomes ``Status_1``.
    """
    spelling = {}
    for reserved_name in reserved:
        spelling.setdefault(reserved_name.lower(), reserved_name)
    used: Set[str] = set(spelling)

    resolved = []
    for name in names:
        candidate = sanitizer(name)
        key = candidate.lower()

        if key in used:
            base = spelling.get(key, candidate)
            suffix = 1
            candidate = f"{base}_{suffix}"
            while candidate.lower() in used:
                suffix += 1
                candidate = f"{base}_{suffix}"
        else:
            spelling[key] = candidate

        used.add(candidate.lower())
        spelling.setdefault(candidate.lower(), candidate)
        resolved.append(candidate)

    return resolved


def junction_table_name(table_storage_name: str, field_storage_name: str) -> str:
    return f"_link_{table_storage_name}_{field_storage_name}"


def sanitize_base_name(name: str, default: str) -> str:
    """File-name stem for a snapshot; falls back to default when nothing usable is left"""
    sanitized = _UNDERSCORE_RUNS.sub("_", _INVALID_CHARS.sub("_", (name or "").strip()))
    if len(sanitized) > 1:
        sanitized = sanitized.strip("_")
    if not sanitized or sanitized == "_":
        return default
    return sanitized
