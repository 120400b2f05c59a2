from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string (or the date part of an ISO datetime).

    - None / "" -> None
    - Raises ValueError on anything else that does not parse
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    if "T" in s:
        s = s.split("T", 1)[0]
    return date.fromisoformat(s)


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
