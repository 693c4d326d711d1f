from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

# Window edges are half-open: [start 00:00:00, day after end 00:00:00)
DAY_START = time(0, 0, 0, 0)


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utctoday() -> date:
    return utcnow().date()


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a calendar date ("YYYY-MM-DD").

    - None / "" -> None
    - anything else that is not a plain date raises ValueError
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    """
    Expand calendar dates to a half-open UTC-naive timestamp range.

    The upper bound is midnight after end, exclusive, so every instant of
    end (23:59:59.999 and any finer fraction) is inside.
    """
    return datetime.combine(start, DAY_START), datetime.combine(end + timedelta(days=1), DAY_START)


def days_ago(end: date, days: int) -> date:
    return end - timedelta(days=days)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")
