# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities.

All timestamps handled by the domain are timezone-aware UTC. Values read
back from the datastore or the cache arrive as ISO strings, so parsing is
tolerant: anything unparsable becomes None instead of raising.

Usage:
------
    from src.utils.datetime import utc_now, parse_iso

    created_at = utc_now()
    submitted_at = parse_iso(record.get("submitted_at"))
"""

from datetime import date, datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso(value: Any) -> datetime | None:
    """Parse an ISO 8601 value into an aware UTC datetime.

    Accepts datetimes, dates, ISO strings (with a trailing "Z" or an
    offset) and None.

    Args:
        value: Value to parse.

    Returns:
        Timezone-aware UTC datetime, or None if the value is empty or
        cannot be parsed.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    if not isinstance(value, str):
        return None

    try:
        dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_utc(dt)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO 8601 formatted string or None.
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def minutes_between(start: datetime | None, end: datetime | None) -> float | None:
    """Number of minutes elapsed from start to end.

    Args:
        start: Start of the interval.
        end: End of the interval.

    Returns:
        Elapsed minutes rounded to two decimals, or None if either bound
        is missing.
    """
    if start is None or end is None:
        return None
    delta = ensure_utc(end) - ensure_utc(start)
    return round(delta.total_seconds() / 60, 2)
