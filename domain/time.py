"""
Domain time utilities (pure).

Every timestamp stored on a sale is timezone-aware UTC. These helpers validate
that and normalize inputs coming from the API edge.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Reject anything that is not a UTC datetime.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if not isinstance(value, datetime):
        raise ValueError(f"{name} must be a datetime")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are assumed to be UTC; aware ones are converted."""

    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["require_utc_timestamp", "utc_now", "as_utc"]
