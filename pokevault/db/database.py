"""
Database engine and session management.

Provides the async SQLAlchemy engine and session factory for the local
cache database.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from pokevault.config import settings
from pokevault.models.db import Base

engine = create_async_engine(
    settings.cache_database_url,
    echo=settings.debug,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db() -> None:
    """
    Initialize database tables.

    Creates all tables defined in the ORM models.
    Should be called once before the cache is first used.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
