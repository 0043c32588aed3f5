"""
Cursor pagination for the ranked feed.

The cursor is the creation timestamp of the last report of the previous page
in *creation* order, not score order. Because every page is drawn from a
contiguous newest-first slice of the store, following ``next_cursor`` from
the first page visits every report exactly once no matter how scoring
reorders items inside a page.
"""

from datetime import datetime
from typing import Annotated, Optional, Sequence, TypeVar

from fastapi import Query

from helpers.time_utils import format_iso8601, to_naive_utc
from models.config import settings
from models.exceptions import InvalidCursorException

T = TypeVar("T")

FeedLimit = Annotated[
    int,
    Query(
        ge=1,
        le=settings.FEED_MAX_LIMIT,
        description="Maximum number of reports to return",
    ),
]
FeedCursor = Annotated[
    Optional[str],
    Query(description="ISO 8601 creation time of the last report already seen"),
]


def parse_cursor(cursor: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO 8601 cursor into a naive UTC datetime.

    Args:
        cursor: Raw cursor from the query string (``Z`` suffix accepted)

    Returns:
        The bound to query ``created_at <``, or None when absent

    Raises:
        InvalidCursorException: If the cursor is not a valid timestamp
    """
    if cursor is None or not cursor.strip():
        return None
    raw = cursor.strip()
    if raw.endswith("Z") or raw.endswith("z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError as e:
        raise InvalidCursorException(cursor) from e
    return to_naive_utc(parsed)


def format_cursor(created_at: datetime) -> str:
    return format_iso8601(created_at)


def paginate_window(
    candidates: Sequence[T], limit: int, created_at_of=lambda item: item.created_at
) -> tuple[list[T], Optional[str], bool]:
    """
    Split a newest-first candidate batch of up to ``limit + 1`` items.

    Args:
        candidates: Raw candidates in creation order, newest first
        limit: Page size
        created_at_of: Accessor for an item's creation time

    Returns:
        Tuple of (window to score, next cursor, has more). The window is the
        first ``limit`` raw candidates; the extra candidate only signals that
        another page exists.
    """
    has_more = len(candidates) > limit
    window = list(candidates[:limit])
    next_cursor = format_cursor(created_at_of(window[-1])) if has_more else None
    return window, next_cursor, has_more
