"""
Database session management.

WHY: Async database sessions are required for FastAPI's async/await pattern.
Using a context manager ensures proper connection cleanup and transaction management.
"""

from typing import Any, AsyncGenerator, Dict
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from survey_analytics.core.config import settings


def _engine_options() -> Dict[str, Any]:
    """
    Build engine keyword arguments for the configured backend.

    WHY: SQLite (local development) uses a single-connection pool that
    rejects pool sizing arguments; PostgreSQL gets a real pool.
    """
    options: Dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if not settings.is_sqlite:
        options.update(pool_size=10, max_overflow=20)
    return options


engine = create_async_engine(settings.async_database_url, **_engine_options())

# expire_on_commit=False prevents lazy-loading issues after commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.

    WHY: Each request gets its own session. The whole request is one
    transaction: commit on success, roll back on any error. Response
    submission relies on this to insert the completed response and delete
    the in-progress session atomically.

    Yields:
        AsyncSession: Database session for the request
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
