"""
Comment service for business logic.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    CommentNotFoundException,
    InsufficientPermissionsException,
    ReplyNotFoundException,
    ReportNotFoundException,
    ValidationException,
)
from models.votes import VoteSet, VoteType
from repositories.comment_repository import CommentRepository
from repositories.report_repository import ReportRepository
from services.feed_service import comment_view, reply_view


class CommentService:
    """Service for comment-related business logic."""

    @staticmethod
    async def _get_report(db: AsyncSession, report_id: int) -> db_models.Report:
        report = await ReportRepository(db).get_by_id(report_id)
        if not report:
            raise ReportNotFoundException("Report not found")
        return report

    @staticmethod
    async def _get_comment(
        db: AsyncSession, report_id: int, comment_id: int
    ) -> db_models.Comment:
        await CommentService._get_report(db, report_id)
        comment = await CommentRepository(db).get_in_report(report_id, comment_id)
        if not comment:
            raise CommentNotFoundException("Comment not found")
        return comment

    @staticmethod
    async def _get_reply(
        db: AsyncSession, report_id: int, comment_id: int, reply_id: int
    ) -> db_models.Reply:
        await CommentService._get_comment(db, report_id, comment_id)
        reply = await CommentRepository(db).get_reply(comment_id, reply_id)
        if not reply:
            raise ReplyNotFoundException("Reply not found")
        return reply

    @staticmethod
    async def add_comment(
        db: AsyncSession, report_id: int, user: db_models.User, text: str
    ) -> schemas.CommentCreated:
        """
        Add a comment to a report.

        Args:
            db: Database session
            report_id: Report ID
            user: Commenting user
            text: Comment text

        Returns:
            The created comment

        Raises:
            ValidationException: If the text is empty
            ReportNotFoundException: If the report does not exist
        """
        text = (text or "").strip()
        if not text:
            raise ValidationException("Comment text is required")

        report = await CommentService._get_report(db, report_id)
        comment = db_models.Comment(
            report_id=report.id,
            user_id=user.id,
            author=user,
            text=text,
            upvotes=[],
            downvotes=[],
            replies=[],
        )
        report.comments.append(comment)
        await CommentRepository(db).save(comment)
        logger.info(f"Comment {comment.id} added to report {report_id} by {user.id}")

        return schemas.CommentCreated(
            message="Comment added successfully",
            comment=comment_view(comment, user.id),
        )

    @staticmethod
    async def add_reply(
        db: AsyncSession,
        report_id: int,
        comment_id: int,
        user: db_models.User,
        text: str,
    ) -> schemas.ReplyCreated:
        """
        Reply to a comment.

        Raises:
            ValidationException: If the text is empty
            ReportNotFoundException: If the report does not exist
            CommentNotFoundException: If the comment is not on that report
        """
        text = (text or "").strip()
        if not text:
            raise ValidationException("Reply text is required")

        comment = await CommentService._get_comment(db, report_id, comment_id)
        reply = db_models.Reply(
            comment_id=comment.id,
            user_id=user.id,
            author=user,
            text=text,
            upvotes=[],
            downvotes=[],
        )
        comment.replies.append(reply)
        await CommentRepository(db).save(comment)
        logger.info(f"Reply {reply.id} added to comment {comment_id} by {user.id}")

        return schemas.ReplyCreated(
            message="Reply added successfully", reply=reply_view(reply, user.id)
        )

    @staticmethod
    async def _toggle_vote(
        db: AsyncSession,
        entity: db_models.Comment | db_models.Reply,
        user_id: int,
        vote_type: VoteType,
    ) -> schemas.VoteResponse:
        votes = VoteSet.of(entity)
        new_vote = votes.toggle(user_id, vote_type)
        votes.apply_to(entity)
        await CommentRepository(db).save(entity)

        if new_vote is None:
            message = "Vote removed"
        else:
            message = f"{type(entity).__name__} {vote_type.value}d"
        return schemas.VoteResponse(
            message=message,
            upvotes=votes.upvote_count,
            downvotes=votes.downvote_count,
            user_vote=new_vote,
        )

    @staticmethod
    async def vote_comment(
        db: AsyncSession,
        report_id: int,
        comment_id: int,
        user_id: int,
        vote_type: VoteType,
    ) -> schemas.VoteResponse:
        """
        Toggle the user's vote on a comment.

        Raises:
            ReportNotFoundException: If the report does not exist
            CommentNotFoundException: If the comment is not on that report
        """
        comment = await CommentService._get_comment(db, report_id, comment_id)
        return await CommentService._toggle_vote(db, comment, user_id, vote_type)

    @staticmethod
    async def vote_reply(
        db: AsyncSession,
        report_id: int,
        comment_id: int,
        reply_id: int,
        user_id: int,
        vote_type: VoteType,
    ) -> schemas.VoteResponse:
        """Toggle the user's vote on a reply."""
        reply = await CommentService._get_reply(db, report_id, comment_id, reply_id)
        return await CommentService._toggle_vote(db, reply, user_id, vote_type)

    @staticmethod
    async def delete_comment(
        db: AsyncSession, report_id: int, comment_id: int, user_id: int
    ) -> schemas.MessageResponse:
        """
        Delete a comment and its replies.

        Only the comment's author may delete it; the report owner may not.

        Raises:
            ReportNotFoundException: If the report does not exist
            CommentNotFoundException: If the comment is not on that report
            InsufficientPermissionsException: If the user is not the author
        """
        comment = await CommentService._get_comment(db, report_id, comment_id)
        if comment.user_id != user_id:
            raise InsufficientPermissionsException(
                "Not authorized to delete this comment"
            )

        await CommentRepository(db).delete(comment)
        logger.info(f"Comment {comment_id} deleted by user {user_id}")
        return schemas.MessageResponse(message="Comment deleted successfully")

    @staticmethod
    async def delete_reply(
        db: AsyncSession,
        report_id: int,
        comment_id: int,
        reply_id: int,
        user_id: int,
    ) -> schemas.MessageResponse:
        """
        Delete a reply.

        Raises:
            ReplyNotFoundException: If the reply is not on that comment
            InsufficientPermissionsException: If the user is not the author
        """
        reply = await CommentService._get_reply(db, report_id, comment_id, reply_id)
        if reply.user_id != user_id:
            raise InsufficientPermissionsException(
                "Not authorized to delete this reply"
            )

        await CommentRepository(db).delete(reply)
        logger.info(f"Reply {reply_id} deleted by user {user_id}")
        return schemas.MessageResponse(message="Reply deleted successfully")
