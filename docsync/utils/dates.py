"""Date helpers for the loosely formatted dates found in embedded document lists."""

import re
from datetime import date, datetime
from typing import Optional

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")


def to_calendar_date(value: Optional[str]) -> Optional[date]:
    """Truncate an ISO date or timestamp string to its calendar date.

    Only the first 10 characters are read, so "2024-03-01T23:30:00+09:00"
    becomes 2024-03-01 without any timezone conversion.

    Args:
        value: Raw date string

    Returns:
        The calendar date, or None if the value is empty or not ISO shaped
    """
    if not value:
        return None
    s = value.strip()
    if not _DATE_PREFIX.match(s):
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse a strict YYYY-MM-DD string, returning None for anything else."""
    if not isinstance(value, str):
        return None
    s = value.strip()
    if len(s) != 10:
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def normalize_date_only(value: Optional[str]) -> Optional[str]:
    """Normalize a date or timestamp string to "YYYY-MM-DD".

    Args:
        value: "YYYY-MM-DD", a longer ISO string, or another ISO timestamp

    Returns:
        The date part as a string, or None if the value cannot be read
    """
    if not value:
        return None
    s = value.strip()
    if not s:
        return None
    if _DATE_PREFIX.match(s):
        return s[:10]
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00")).date().isoformat()
    except ValueError:
        return None
