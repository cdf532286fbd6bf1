"""UTC clock helpers shared by models, storage and the windowing engine."""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Naive values are taken to already be UTC (that is how the store persists
    them); aware values are converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert to the naive UTC form bound into DuckDB TIMESTAMP columns."""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


def isoformat_utc(value: datetime) -> str:
    """Render an instant as an ISO-8601 UTC string with millisecond precision."""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
