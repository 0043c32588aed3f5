"""
Relevance scoring for the personalized feed.

A report's score is a sum of small integer bonuses:

    follow      +3  author is followed by the viewer
    location    +2  author's location text equals the viewer's (case-insensitive)
    distance    +3 / +2 / +1  author within 5 / 20 / 50 km of the viewer
    recency     +2 / +1  posted less than 24 / 72 hours ago
    engagement  +2 / +1  likes + upvotes - downvotes + comments above 20 / 5

The location and distance bonuses are independent and both apply to a
same-city author with coordinates, so such authors can gain up to +5 from
place alone. Both use the author's profile, not the report's coordinates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Optional

import repositories.db_models as db_models
from helpers.geo_utils import Coordinates, haversine_km
from helpers.time_utils import hours_between, utc_now

FOLLOW_BONUS = 3
LOCATION_TEXT_BONUS = 2

# (exclusive upper bound, points), checked in order
DISTANCE_BONUSES = ((5.0, 3), (20.0, 2), (50.0, 1))
RECENCY_BONUSES = ((24.0, 2), (72.0, 1))
# (exclusive lower bound, points), checked in order
ENGAGEMENT_BONUSES = ((20, 2), (5, 1))


@dataclass(frozen=True)
class Viewer:
    """What scoring needs to know about the user the feed is built for."""

    id: int
    following_ids: AbstractSet[int] = field(default_factory=frozenset)
    location: Optional[str] = None
    coordinates: Coordinates = Coordinates(None, None)

    @classmethod
    def from_user(
        cls, user: db_models.User, following_ids: AbstractSet[int]
    ) -> "Viewer":
        return cls(
            id=user.id,
            following_ids=frozenset(following_ids),
            location=user.location,
            coordinates=Coordinates.of(user),
        )


def _banded(value: float, bands: tuple[tuple[float, int], ...]) -> int:
    for bound, points in bands:
        if value < bound:
            return points
    return 0


def engagement_of(report: db_models.Report) -> int:
    return (
        len(report.likes or [])
        + len(report.upvotes or [])
        - len(report.downvotes or [])
        + len(report.comments or [])
    )


def score_report(
    report: db_models.Report, viewer: Viewer, now: Optional[datetime] = None
) -> int:
    """
    Compute the viewer-specific relevance score of one report.

    Args:
        report: Report with its author and comments loaded
        viewer: The user the feed is being built for
        now: Reference time for recency (defaults to the current time)

    Returns:
        Integer score, 0 to 12
    """
    now = now or utc_now()
    author = report.author
    score = 0

    if author.id in viewer.following_ids:
        score += FOLLOW_BONUS

    if (
        viewer.location
        and author.location
        and viewer.location.lower() == author.location.lower()
    ):
        score += LOCATION_TEXT_BONUS

    distance = haversine_km(viewer.coordinates, Coordinates.of(author))
    if distance is not None:
        score += _banded(distance, DISTANCE_BONUSES)

    score += _banded(hours_between(report.created_at, now), RECENCY_BONUSES)

    engagement = engagement_of(report)
    for bound, points in ENGAGEMENT_BONUSES:
        if engagement > bound:
            score += points
            break

    return score


def rank_reports(
    reports: list[db_models.Report], viewer: Viewer, now: Optional[datetime] = None
) -> list[tuple[db_models.Report, int]]:
    """
    Score reports and order them by descending score.

    The sort is stable, so equal scores keep the input (newest-first) order.
    """
    now = now or utc_now()
    scored = [(report, score_report(report, viewer, now)) for report in reports]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored
