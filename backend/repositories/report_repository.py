"""
Report repository for database operations.

Reports are loaded together with their author, images, comments (with
replies) and AI report; see the relationship loaders in db_models.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import repositories.db_models as db_models
from .base import BaseRepository


class ReportRepository(BaseRepository[db_models.Report]):
    """Repository for Report aggregate database operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize report repository.

        Args:
            db: Async database session
        """
        super().__init__(db_models.Report, db)

    @staticmethod
    def _newest_first():
        return (db_models.Report.created_at.desc(), db_models.Report.id.desc())

    async def get_feed_candidates(
        self, before: Optional[datetime], count: int
    ) -> List[db_models.Report]:
        """
        Get the newest reports created strictly before ``before``.

        Args:
            before: Exclusive upper bound on ``created_at`` (None for no bound)
            count: Maximum number of reports to return

        Returns:
            Reports ordered newest first
        """
        stmt = select(db_models.Report)
        if before is not None:
            stmt = stmt.where(db_models.Report.created_at < before)
        stmt = stmt.order_by(*self._newest_first()).limit(count)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_by_user(self, user_id: int) -> List[db_models.Report]:
        """
        Get every report authored by a user, newest first.

        Args:
            user_id: Author ID

        Returns:
            List of reports
        """
        result = await self.db.execute(
            select(db_models.Report)
            .where(db_models.Report.user_id == user_id)
            .order_by(*self._newest_first())
        )
        return list(result.scalars().all())

    async def get_all(
        self, skip: int = 0, limit: int = 100
    ) -> List[db_models.Report]:
        """
        Get reports newest first with offset pagination.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of reports
        """
        result = await self.db.execute(
            select(db_models.Report)
            .order_by(*self._newest_first())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())
