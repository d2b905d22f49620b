"""
JSON serialization for cached payloads.

Cached values are plain JSON. Dates and datetimes go out as ISO-8601 strings
and enums as their values; on the way back `revive_dates()` turns the named
fields into `date` / `datetime` objects again so a cache hit hands callers
the same types a fresh load would.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Type, Union

DateType = Union[Type[date], Type[datetime]]


def json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(payload: Any) -> str:
    return json.dumps(payload, default=json_default, separators=(",", ":"))


def loads(raw: str) -> Any:
    return json.loads(raw)


def _revive_value(value: Any, target: DateType) -> Any:
    if not isinstance(value, str):
        return value
    if target is datetime:
        return datetime.fromisoformat(value)
    # A datetime string stored under a date field still yields a date.
    return date.fromisoformat(value[:10])


def revive_dates(payload: Any, fields: Mapping[str, DateType]) -> Any:
    """
    Recursively convert ISO strings back into date objects.

    Walks dicts and lists (including the ``data`` list of a paginated
    envelope and nested objects such as a plan summary). Only keys named in
    `fields` are touched; their target type decides between `date` and
    `datetime`.

    Raises
    ------
    ValueError
        If a named field holds a string that is not valid ISO-8601.
    """
    if isinstance(payload, list):
        return [revive_dates(item, fields) for item in payload]

    if isinstance(payload, dict):
        revived: dict[str, Any] = {}
        for key, value in payload.items():
            if key in fields:
                revived[key] = _revive_value(value, fields[key])
            elif isinstance(value, (dict, list)):
                revived[key] = revive_dates(value, fields)
            else:
                revived[key] = value
        return revived

    return payload
