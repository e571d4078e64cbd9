"""UTC timestamp helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def format_instant(value: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision, e.g. 2024-05-01T10:00:00.000Z.

    Sub-millisecond parts are rounded up, so the stamp is never earlier than ``value``.
    """
    value = value.astimezone(timezone.utc)
    remainder = value.microsecond % 1000
    if remainder:
        value += timedelta(microseconds=1000 - remainder)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso(now: Optional[datetime] = None) -> str:
    return format_instant(now or datetime.now(timezone.utc))
