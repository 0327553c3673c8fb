"""Async engine + session factory.

Repositories issue raw text() SQL through the session; there is no ORM
mapping layer. PostgreSQL's default READ COMMITTED isolation is relied on by
the conditional updates in the offer-accept unit.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings

engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_pre_ping=True,
)

# The sweeper opens its own sessions from this factory, outside any request
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, closed afterwards.

    Services own commit/rollback; an uncommitted session is rolled back
    on close.
    """
    async with async_session_factory() as session:
        yield session


async def check_database() -> None:
    """Round-trip to PostgreSQL; raises (OSError / SQLAlchemyError) if unreachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
