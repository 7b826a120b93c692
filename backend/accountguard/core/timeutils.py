"""
UTC helpers shared by the ledger, token store and orchestrator.

MongoDB keeps datetimes as naive UTC; everything in memory is timezone-aware.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime (naive values are assumed UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime) -> datetime:
    """Convert *value* to the naive UTC form stored in MongoDB."""
    return as_utc(value).replace(tzinfo=None)
