"""
Comment repository for database operations.

Comments and replies are children of the report aggregate; lookups here are
always scoped to their parent so an id from another report never matches.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import repositories.db_models as db_models
from .base import BaseRepository


class CommentRepository(BaseRepository[db_models.Comment]):
    """Repository for Comment and Reply database operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize comment repository.

        Args:
            db: Async database session
        """
        super().__init__(db_models.Comment, db)

    async def get_in_report(
        self, report_id: int, comment_id: int
    ) -> Optional[db_models.Comment]:
        """
        Get a comment that belongs to the given report.

        Args:
            report_id: Parent report ID
            comment_id: Comment ID

        Returns:
            Comment if found under that report, None otherwise
        """
        result = await self.db.execute(
            select(db_models.Comment).where(
                db_models.Comment.id == comment_id,
                db_models.Comment.report_id == report_id,
            )
        )
        return result.scalars().first()

    async def get_reply(
        self, comment_id: int, reply_id: int
    ) -> Optional[db_models.Reply]:
        """
        Get a reply that belongs to the given comment.

        Args:
            comment_id: Parent comment ID
            reply_id: Reply ID

        Returns:
            Reply if found under that comment, None otherwise
        """
        result = await self.db.execute(
            select(db_models.Reply).where(
                db_models.Reply.id == reply_id,
                db_models.Reply.comment_id == comment_id,
            )
        )
        return result.scalars().first()
