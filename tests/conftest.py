"""
Pytest configuration and fixtures.

WHY: Fixtures provide reusable test setup/teardown logic, reducing
duplication and ensuring consistent test environments.
"""

import os

# Settings are read at import time; point them at test values first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from datetime import datetime
from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from survey_analytics.main import app
from survey_analytics.models.base import Base
from survey_analytics.models.user import User, UserRole
from survey_analytics.db.session import get_db
from survey_analytics.core.auth import create_access_token


# WHY: SQLite keeps tests free of external services. StaticPool shares the
# single in-memory database between every connection of the engine.
TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed reference time for clock-dependent aggregations
FIXED_NOW = datetime(2024, 1, 7, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Create a test database engine.

    WHY: Function scope ensures each test gets a fresh database state.
    """
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a test database session.

    Yields:
        AsyncSession: Database session for the test
    """
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test HTTP client bound to the test session.

    Yields:
        AsyncClient: HTTP client for making test requests
    """
    from httpx import ASGITransport

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fixed_now():
    """Clock returning FIXED_NOW, for services and aggregators."""
    return lambda: FIXED_NOW


async def _create_user(session: AsyncSession, name: str, email: str, role: UserRole) -> User:
    user = User(name=name, email=email, role=role, is_active=True)
    session.add(user)
    await session.flush()
    await session.refresh(user)
    return user


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "Test Admin", "admin@example.com", UserRole.ADMIN)


@pytest_asyncio.fixture
async def test_analyst(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "Test Analyst", "analyst@example.com", UserRole.ANALYST)


@pytest_asyncio.fixture
async def test_respondent(db_session: AsyncSession) -> User:
    return await _create_user(
        db_session, "Test Respondent", "respondent@example.com", UserRole.RESPONDENT
    )


def auth_headers_for(user: User) -> Dict[str, str]:
    """Bearer header carrying a token for user."""
    token = create_access_token({"user_id": user.id, "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(test_admin: User) -> Dict[str, str]:
    return auth_headers_for(test_admin)


@pytest.fixture
def analyst_headers(test_analyst: User) -> Dict[str, str]:
    return auth_headers_for(test_analyst)


@pytest.fixture
def respondent_headers(test_respondent: User) -> Dict[str, str]:
    return auth_headers_for(test_respondent)
