"""
User repository for database operations.
"""

from typing import List, Optional

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

import repositories.db_models as db_models
from .base import BaseRepository


class UserRepository(BaseRepository[db_models.User]):
    """Repository for User entity and follow graph operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize user repository.

        Args:
            db: Async database session
        """
        super().__init__(db_models.User, db)

    async def get_by_email(self, email: str) -> Optional[db_models.User]:
        """
        Get user by email.

        Args:
            email: User email

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(
            select(db_models.User).where(db_models.User.email == email)
        )
        return result.scalars().first()

    async def get_by_username(self, username: str) -> Optional[db_models.User]:
        """
        Get user by username.

        Args:
            username: Username

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(
            select(db_models.User).where(db_models.User.username == username)
        )
        return result.scalars().first()

    async def get_by_credential(self, credential: str) -> Optional[db_models.User]:
        """
        Get user by email or username.

        Args:
            credential: Email address or username

        Returns:
            User if found, None otherwise
        """
        result = await self.db.execute(
            select(db_models.User).where(
                or_(
                    db_models.User.email == credential,
                    db_models.User.username == credential,
                )
            )
        )
        return result.scalars().first()

    async def email_exists(self, email: str) -> bool:
        return await self.get_by_email(email) is not None

    async def username_exists(self, username: str) -> bool:
        return await self.get_by_username(username) is not None

    # ------------------------------------------------------------------
    # Follow graph
    # ------------------------------------------------------------------

    async def get_following_ids(self, user_id: int) -> List[int]:
        """Ids of the users ``user_id`` follows."""
        result = await self.db.execute(
            select(db_models.follows.c.following_id).where(
                db_models.follows.c.follower_id == user_id
            )
        )
        return list(result.scalars().all())

    async def is_following(self, follower_id: int, following_id: int) -> bool:
        result = await self.db.execute(
            select(db_models.follows.c.follower_id).where(
                db_models.follows.c.follower_id == follower_id,
                db_models.follows.c.following_id == following_id,
            )
        )
        return result.first() is not None

    async def count_followers(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(db_models.follows)
            .where(db_models.follows.c.following_id == user_id)
        )
        return int(result.scalar_one())

    async def count_following(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(db_models.follows)
            .where(db_models.follows.c.follower_id == user_id)
        )
        return int(result.scalar_one())

    async def follow(self, follower_id: int, following_id: int) -> bool:
        """
        Record that ``follower_id`` follows ``following_id`` and commit.

        Both directions of the relationship live in one row, so followers and
        following can never disagree.

        Returns:
            False if the relationship already existed
        """
        if await self.is_following(follower_id, following_id):
            return False
        await self.db.execute(
            insert(db_models.follows).values(
                follower_id=follower_id, following_id=following_id
            )
        )
        await self.db.commit()
        return True

    async def unfollow(self, follower_id: int, following_id: int) -> bool:
        """
        Remove a follow relationship and commit.

        Returns:
            False if there was nothing to remove
        """
        result = await self.db.execute(
            delete(db_models.follows).where(
                db_models.follows.c.follower_id == follower_id,
                db_models.follows.c.following_id == following_id,
            )
        )
        await self.db.commit()
        return bool(result.rowcount)
