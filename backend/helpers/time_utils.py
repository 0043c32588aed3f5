"""
Timestamp utilities.

Timestamps are stored as naive UTC datetimes (SQLite keeps no offset) and are
rendered for the API as ISO 8601 with a ``Z`` suffix.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ensure_utc(dt: datetime) -> datetime:
    """
    Return ``dt`` as an aware UTC datetime.

    Naive datetimes are taken to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert any datetime to the naive UTC form used for storage and queries."""
    return ensure_utc(dt).replace(tzinfo=None)


def format_iso8601(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 string.

    Microseconds are kept so the value can be fed back as a strict
    ``created_at <`` bound without skipping rows created in the same second.

    Args:
        dt: The datetime to format

    Returns:
        ISO 8601 formatted string (e.g., "2024-01-15T10:30:00.123456Z")
    """
    return (
        ensure_utc(dt).replace(tzinfo=None).isoformat(timespec="microseconds") + "Z"
    )


def hours_between(earlier: datetime, later: datetime) -> float:
    """Elapsed hours from ``earlier`` to ``later`` (negative if reversed)."""
    return (ensure_utc(later) - ensure_utc(earlier)).total_seconds() / 3600

