from __future__ import annotations
import uuid
from datetime import date, datetime, timezone
from typing import Any


def new_id() -> str:
    """Random RFC 4122 version 4 id, lowercase 8-4-4-4-12 hex."""
    return str(uuid.uuid4())


def timestamp_slug() -> str:
    # Safe for file names on every platform (no ':')
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


def json_default(obj: Any) -> Any:
    """`default=` hook for json.dumps: dates become ISO strings."""
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (set, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def parse_iso(value: Any) -> Any:
    """
    Inverse of json_default for dates. A plain 'YYYY-MM-DD' becomes a date,
    anything longer a datetime. Values that are not ISO strings are returned as-is.
    """
    if not isinstance(value, str):
        return value
    s = value
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        if len(s) == 10:
            return date.fromisoformat(s)
        return datetime.fromisoformat(s)
    except ValueError:
        return value
