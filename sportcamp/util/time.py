from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_iso(dt: datetime) -> str:
    """UTC ISO-8601 string with Z."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return to_iso(utcnow())


def days_ago_iso(days: int, *, now: Optional[datetime] = None) -> str:
    return to_iso((now or utcnow()) - timedelta(days=int(days)))


def month_start(now: Optional[datetime] = None) -> str:
    """First day of the (UTC) calendar month, e.g. '2026-10-01'."""
    dt = now or utcnow()
    return dt.date().replace(day=1).isoformat()


def iso_date(dt: datetime) -> str:
    return dt.date().isoformat()
