"""
Personalized feed and viewer-specific report presentation.
"""

from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import paginate_window, parse_cursor
from models.config import settings
from models.exceptions import UserNotFoundException
from models.votes import VoteSet
from repositories.report_repository import ReportRepository
from repositories.user_repository import UserRepository
from services.feed_ranking import Viewer, rank_reports


def _author_summary(user: db_models.User) -> schemas.AuthorSummary:
    return schemas.AuthorSummary.model_validate(user)


def reply_view(reply: db_models.Reply, viewer_id: Optional[int]) -> schemas.Reply:
    votes = VoteSet.of(reply)
    return schemas.Reply(
        id=reply.id,
        author=_author_summary(reply.author),
        text=reply.text,
        upvotes=votes.upvote_count,
        downvotes=votes.downvote_count,
        user_vote=votes.user_vote(viewer_id),
        is_owner=viewer_id is not None and reply.user_id == viewer_id,
        created_at=reply.created_at,
    )


def comment_view(
    comment: db_models.Comment, viewer_id: Optional[int]
) -> schemas.Comment:
    votes = VoteSet.of(comment)
    return schemas.Comment(
        id=comment.id,
        author=_author_summary(comment.author),
        text=comment.text,
        upvotes=votes.upvote_count,
        downvotes=votes.downvote_count,
        user_vote=votes.user_vote(viewer_id),
        is_owner=viewer_id is not None and comment.user_id == viewer_id,
        created_at=comment.created_at,
        replies=[reply_view(reply, viewer_id) for reply in comment.replies],
    )


def _ai_report_view(ai_report: Optional[db_models.AIReport]) -> Optional[schemas.AIReport]:
    if ai_report is None:
        return None
    return schemas.AIReport(
        status=ai_report.status,
        short_summary=ai_report.short_summary,
        full_report=ai_report.full_report,
        extracted=schemas.Evidence(
            weapons=ai_report.weapons or [],
            vehicle_types=ai_report.vehicle_types or [],
            license_plates=ai_report.license_plates or [],
            suspects_count=ai_report.suspects_count,
            faces_detected=ai_report.faces_detected,
            ocr_text=ai_report.ocr_text,
        ),
        confidence_score=ai_report.confidence_score,
        reviewed_by_user=bool(ai_report.reviewed_by_user),
        reviewed_at=ai_report.reviewed_at,
    )


def report_view(
    report: db_models.Report,
    viewer_id: Optional[int],
    relevance_score: Optional[int] = None,
) -> schemas.Report:
    """
    Render a report for one viewer.

    ``user_vote`` and ``is_owner`` are filled on the report and on every
    comment and reply; an anonymous viewer (None) never owns or voted on
    anything.

    Args:
        report: Fully loaded report aggregate
        viewer_id: Viewing user's ID, or None
        relevance_score: Feed score, when rendered as part of the feed

    Returns:
        Report response schema
    """
    votes = VoteSet.of(report)
    return schemas.Report(
        id=report.id,
        author=_author_summary(report.author),
        description=report.description,
        incident_description=report.incident_description,
        category=report.category,
        incident_date=report.incident_date,
        incident_time=report.incident_time,
        location_text=report.location_text,
        latitude=report.latitude,
        longitude=report.longitude,
        anonymous=bool(report.anonymous),
        agreed=bool(report.agreed),
        tags=report.tags or [],
        images=[
            schemas.ReportImage(url=image.url, position=image.position)
            for image in report.images
        ],
        likes=len(report.likes or []),
        upvotes=votes.upvote_count,
        downvotes=votes.downvote_count,
        comments=[comment_view(comment, viewer_id) for comment in report.comments],
        ai_report=_ai_report_view(report.ai_report),
        user_vote=votes.user_vote(viewer_id),
        is_owner=viewer_id is not None and report.user_id == viewer_id,
        relevance_score=relevance_score,
        created_at=report.created_at,
        updated_at=report.updated_at,
    )


class FeedService:
    """Service for building the personalized report feed."""

    @staticmethod
    async def get_personalized_feed(
        db: AsyncSession,
        viewer_id: int,
        cursor: Optional[str] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> schemas.FeedPage:
        """
        Build one page of the viewer's feed.

        Candidates are the ``limit + 1`` newest reports before the cursor. The
        first ``limit`` of them form the page and are reordered by score; the
        extra one only tells whether another page exists. The next cursor is
        the creation time of the last report of the page in creation order.

        Args:
            db: Database session
            viewer_id: ID of the user the feed is for
            cursor: ISO 8601 timestamp from the previous page's ``next_cursor``
            limit: Page size (defaults to FEED_DEFAULT_LIMIT)
            now: Reference time for recency scoring

        Returns:
            FeedPage with annotated reports

        Raises:
            UserNotFoundException: If the viewer does not exist
            InvalidCursorException: If the cursor is not a timestamp
        """
        limit = limit or settings.FEED_DEFAULT_LIMIT
        before = parse_cursor(cursor)

        user_repo = UserRepository(db)
        viewer_user = await user_repo.get_by_id(viewer_id)
        if not viewer_user:
            raise UserNotFoundException("User not found")
        following_ids = await user_repo.get_following_ids(viewer_id)
        viewer = Viewer.from_user(viewer_user, set(following_ids))

        candidates = await ReportRepository(db).get_feed_candidates(before, limit + 1)
        window, next_cursor, has_more = paginate_window(candidates, limit)
        ranked = rank_reports(window, viewer, now)

        logger.debug(
            f"Feed for user {viewer_id}: {len(ranked)} reports, "
            f"cursor={cursor}, has_more={has_more}"
        )

        return schemas.FeedPage(
            feed=[report_view(report, viewer_id, score) for report, score in ranked],
            next_cursor=next_cursor,
            has_more=has_more,
        )
