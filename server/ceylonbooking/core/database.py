"""Async engine and per-request sessions for the booking ledger."""

from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from .config import settings


def engine_options(database_url: str) -> dict[str, Any]:
    """Pool settings per backend: one shared connection for SQLite, a sized pool for PostgreSQL."""
    if database_url.startswith("sqlite"):
        # An in-memory database only lives as long as its single connection
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {
        "pool_size": settings.database_pool_size,
        "pool_pre_ping": True,
    }


engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **engine_options(settings.database_url),
)

# Objects stay readable after the ledger commits a booking
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session per request, rolled back if the request fails."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# Alias for FastAPI dependency injection
get_db = get_async_session


async def ping_db(session: AsyncSession) -> None:
    """Round-trip to the database; raises if it is unreachable."""
    await session.execute(text("SELECT 1"))


async def init_db() -> None:
    """Create listings, users and bookings tables if they do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
