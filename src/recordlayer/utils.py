"""Utility functions for recordlayer.

Shared helpers for ids, dates and record shapes used by the compilers,
the coalescer and the storage drivers.
"""

import re
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .settings import settings

T = TypeVar("T")


# ===========================================================================
# Core utilities
# ===========================================================================


def group_by(items: Iterable[T], key: Callable[[T], Any]) -> Dict[Any, List[T]]:
    """Group items by key, keeping first-seen key order and item order."""
    groups: Dict[Any, List[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


# ===========================================================================
# Identifiers
# ===========================================================================


def generate_id() -> str:
    """Return a random RFC 4122 uid."""
    return str(uuid.uuid4())


_uid_pattern: Optional["re.Pattern[str]"] = None


def is_uid(value: Any, pattern: Optional[str] = None) -> bool:
    """Check if a string matches the RFC 4122 format (or a custom pattern)."""
    global _uid_pattern
    if not isinstance(value, str):
        return False
    if pattern is not None:
        return re.search(pattern, value) is not None
    if _uid_pattern is None:
        _uid_pattern = re.compile(settings.DYNAMIC_MODEL_ID_PATTERN)
    return _uid_pattern.search(value) is not None


def from_storage_id(record: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of the record with `_id` renamed to `id`."""
    item = dict(record)
    if "_id" in item:
        item["id"] = item.pop("_id")
    return item


# ===========================================================================
# Dates
# ===========================================================================


def iso_date(value: date) -> str:
    """Format a date as YYYY-MM-DD."""
    return value.isoformat()


def iso_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with millisecond precision.

    Naive datetimes are taken as UTC.

    Examples:
        >>> iso_timestamp(datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc))
        '2024-01-05T10:30:00.000Z'
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def adjust_days(value: date, days: int) -> date:
    """Shift a date by a number of days (negative goes backwards)."""
    return value + timedelta(days=days)


def coerce_date(value: Any) -> date:
    """Return the calendar date of a date, datetime or ISO string.

    Raises:
        ValueError: If the value has no parseable date portion
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Cannot read a date from {value!r}")
