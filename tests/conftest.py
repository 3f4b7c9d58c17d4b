"""
Test configuration and fixtures.

This module provides common test fixtures and configuration for all test suites.
Design Rationale:
- Centralized test configuration
- Reusable test fixtures
- In-memory SQLite per test for database isolation
- Mock sessions for unit testing repositories
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, Mock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import songmatch.models.database  # noqa: F401
from songmatch.core.clock import ResetWindow
from songmatch.repositories.match_repository import MatchRepository
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.user_repository import UserRepository

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_session() -> Mock:
    """Create a mock database session."""
    session = Mock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def window() -> ResetWindow:
    return ResetWindow(rollover_hour=9, tz_name="America/Los_Angeles")


@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def post_repository(db_session: AsyncSession) -> PostRepository:
    return PostRepository(db_session)


@pytest.fixture
def swipe_repository(db_session: AsyncSession) -> SwipeRepository:
    return SwipeRepository(db_session)


@pytest.fixture
def match_repository(db_session: AsyncSession) -> MatchRepository:
    return MatchRepository(db_session)


@pytest.fixture
async def api_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Async client against the app, with the database swapped for the test one.

    The ASGI transport does not run the lifespan, so no production database
    is touched.
    """
    from songmatch.main import app
    from songmatch.core.database import get_session

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
