"""
Clock and timestamp helpers.

All timestamps are UTC with second precision. They are persisted as
``YYYY-MM-DD HH:MM:SS`` strings so that the soft-delete predicate is a single
comparison on every supported dialect (lexicographic order equals time order).

A "not deleted" record carries MAX_DATETIME in its soft_deleted_at column.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Union

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_DATETIME = datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_utc(value: datetime) -> datetime:
    # naive values coming back from the database are UTC by convention
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    """Render a datetime in the persisted column format."""
    return to_utc(value).strftime(DATETIME_FORMAT)


def parse_datetime(value: Union[str, datetime, None]) -> datetime | None:
    """
    Parse a persisted timestamp.

    Accepts the column format, ISO-8601 strings (sqlite may hand back either),
    and driver-native datetime objects. Empty values map to None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value).replace(microsecond=0)
    try:
        parsed = datetime.strptime(value, DATETIME_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return to_utc(parsed).replace(microsecond=0)


__all__ = [
    "Clock",
    "DATETIME_FORMAT",
    "MAX_DATETIME",
    "format_datetime",
    "parse_datetime",
    "to_utc",
    "utc_now",
]
