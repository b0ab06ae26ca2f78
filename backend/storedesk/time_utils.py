"""
Timestamps as they travel through storage.

Persisted records carry ISO-8601 strings with millisecond precision and a
trailing "Z" (the browser's Date.toISOString() shape). In memory every
timestamp is a naive datetime in UTC.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time, naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Read a persisted or client-supplied timestamp.

    Blank input gives None. A bare date ("2024-06-01") is midnight UTC,
    offsets are folded into UTC, naive values are taken as UTC already.
    Raises ValueError on anything else.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None

    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Format for storage: "2024-06-01T12:00:00.000Z". Naive input is UTC."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat(timespec="milliseconds") + "Z"
