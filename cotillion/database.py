"""Database configuration and connection management."""

from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from cotillion.config import DATABASE_URL, SQL_DEBUG


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Create async engine (unpooled for SQLite)
engine_options = {"poolclass": NullPool} if DATABASE_URL.startswith("sqlite") else {}
engine = create_async_engine(DATABASE_URL, echo=SQL_DEBUG, future=True, **engine_options)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create any missing tables on startup.

    Alembic owns schema changes; this only bootstraps an empty database.
    """
    # Import models so they register on Base.metadata
    import cotillion.models.db  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections on shutdown."""
    await engine.dispose()
