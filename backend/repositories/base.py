"""
Base repository class providing common database operations.

Aggregates are treated like documents: loaded whole by id, saved whole,
deleted whole.
"""

from typing import Generic, TypeVar

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from repositories.database import Base

T = TypeVar("T", bound=Base)  # type: ignore[valid-type]


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Type parameter T should be a SQLAlchemy model class.
    """

    def __init__(self, model: type[T], db: AsyncSession):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Async database session
        """
        self.model = model
        self.db = db

    async def get_by_id(self, id: int) -> T | None:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity if found, None otherwise
        """
        result = await self.db.execute(
            select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        )
        return result.scalars().first()

    async def create(self, entity: T) -> T:
        """
        Insert a new entity and commit.

        Args:
            entity: Entity to create

        Returns:
            Created entity
        """
        self.db.add(entity)
        await self.db.commit()
        return entity

    async def save(self, entity: T) -> T:
        """
        Persist every pending change on ``entity`` (whole-document upsert).

        Args:
            entity: Entity to save

        Returns:
            Saved entity
        """
        self.db.add(entity)
        await self.db.commit()
        return entity

    async def delete(self, entity: T) -> None:
        """
        Delete entity.

        Args:
            entity: Entity to delete
        """
        await self.db.delete(entity)
        await self.db.commit()

    async def count(self) -> int:
        """
        Count total number of entities.

        Returns:
            Total count
        """
        result = await self.db.execute(select(func.count()).select_from(self.model))
        return int(result.scalar_one())

    def add(self, entity: T) -> None:
        """Add entity to the session without committing."""
        self.db.add(entity)

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self.db.flush()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        await self.db.rollback()
