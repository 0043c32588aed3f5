"""
Async database configuration.
"""

from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from models.config import settings


def create_db_engine() -> AsyncEngine:
    """
    Create the async engine.

    SQLite runs with NullPool (a connection per session); server databases use
    the driver's default queue pool with pre-ping.
    """
    if "sqlite" in settings.DATABASE_URL:
        return create_async_engine(settings.DATABASE_URL, poolclass=NullPool)
    return create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)


engine = create_db_engine()
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """Get database session with automatic cleanup."""
    async with SessionLocal() as db:
        yield db
