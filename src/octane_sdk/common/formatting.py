# octane_sdk/common/formatting.py
"""Small value-formatting helpers shared by the query builder and validator."""

import re
from datetime import UTC, date, datetime, time
from typing import Any

__all__: list[str] = [
    'format_number',
    'normalize_name',
    'to_iso_timestamp',
    'trim_value',
]

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])')
_SEPARATORS = re.compile(r'[\s\-_]+')


def to_iso_timestamp(value: date | datetime) -> str:
    """
    Render a date or datetime as an ISO-8601 UTC timestamp with milliseconds.

    Naive datetimes are taken to be UTC. Plain dates render as midnight UTC.

    Example:
        >>> to_iso_timestamp(datetime(2020, 1, 2, 3, 4, 5))
        '2020-01-02T03:04:05.000Z'
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)

    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    else:
        value = value.astimezone(UTC)

    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f'{value.microsecond // 1000:03d}Z'


def format_number(value: int | float) -> str:
    """Render a number the way the query language expects (no trailing .0)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_name(name: str) -> str:
    """
    Normalize a route segment to a snake_case identifier.

    Handles dashes, spaces, underscores and camelCase:
    'get-all' -> 'get_all', 'workItems' -> 'work_items'.
    """
    split_camel: str = _CAMEL_BOUNDARY.sub('_', name.strip())
    return _SEPARATORS.sub('_', split_camel).strip('_').lower()


def trim_value(value: Any) -> Any:
    """Strip surrounding whitespace from strings; return anything else unchanged."""
    if isinstance(value, str):
        return value.strip()
    return value
