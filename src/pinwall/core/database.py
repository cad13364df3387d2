"""Database session factory setup and teardown."""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import pinwall.models  # noqa: F401  (registers tables with SQLModel metadata)


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: Async connection URL (postgresql+psycopg://... or sqlite+aiosqlite://...)
        pool_size: Maximum number of connections in the pool (server databases only)

    Returns:
        Async session factory for creating database sessions
    """
    engine_kwargs: dict = {
        "pool_pre_ping": True,  # Verify connections before using
        "echo": False,  # Don't log SQL queries (use structlog instead)
    }
    if not db_url.startswith("sqlite"):
        engine_kwargs["pool_size"] = pool_size
        engine_kwargs["max_overflow"] = 0

    engine = create_async_engine(db_url, **engine_kwargs)

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )

    return session_factory


async def create_tables(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Create all tables from SQLModel metadata (development and tests).

    Production schemas are managed by Alembic.
    """
    engine = session_factory.kw["bind"]
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_db_session(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Close every pooled connection held by the session factory's engine."""
    engine = session_factory.kw["bind"]
    await engine.dispose()
