# app/engine/fields.py
"""
Naming convention for admin-added columns.

A column added from the admin table gets a field name ``custom_<n>``. The
appointment record stores its value in ``customFields`` under the bare key
``<n>``; rows handed to the table are flattened so the value also appears as
``custom_<n>`` at the top level. Every conversion between the two shapes goes
through this module.
"""
from typing import Any, Dict, Iterable, Tuple

CUSTOM_PREFIX = "custom_"


def is_custom_field(field: str) -> bool:
    return bool(field) and field.startswith(CUSTOM_PREFIX)


def to_storage_key(field: str) -> str:
    """custom_3 -> 3; non-custom names are returned unchanged"""
    if is_custom_field(field):
        return field[len(CUSTOM_PREFIX):]
    return field


def to_column_field(key: str) -> str:
    """3 -> custom_3"""
    if is_custom_field(key):
        return key
    return f"{CUSTOM_PREFIX}{key}"


def next_custom_field(existing_fields: Iterable[str]) -> str:
    """
    Field name for a new column: one past the number of custom columns,
    bumped until it does not collide with any existing field.
    """
    existing = set(existing_fields)
    index = sum(1 for field in existing if is_custom_field(field)) + 1
    candidate = f"{CUSTOM_PREFIX}{index}"
    while candidate in existing:
        index += 1
        candidate = f"{CUSTOM_PREFIX}{index}"
    return candidate


def flatten_custom_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    """Copy a record and lift each customFields entry to a top-level custom_ key"""
    row = dict(record)
    for key, value in (record.get("customFields") or {}).items():
        row[to_column_field(key)] = value
    return row


def split_custom_fields(data: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split an update payload into (standard fields, customFields keyed without prefix)"""
    standard: Dict[str, Any] = {}
    custom: Dict[str, Any] = {}
    for key, value in data.items():
        if is_custom_field(key):
            custom[to_storage_key(key)] = value
        else:
            standard[key] = value
    return standard, custom
