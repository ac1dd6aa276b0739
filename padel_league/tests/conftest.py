"""
Shared pytest configuration for padel league tests.

Every test gets its own in-memory SQLite database (aiosqlite + StaticPool),
so tests never touch a real PostgreSQL instance.
"""

import os

# Must be set before the app package is imported: disables rate limiting
# and keeps the module-level engine off PostgreSQL.
os.environ["ENV"] = "test"
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from padel_league.database.db import Base, get_db_session  # noqa: E402
from padel_league.services.league_store import LeagueStore  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Fresh in-memory database with all tables created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        from padel_league.database import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_maker):
    """Database session bound to the per-test engine."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client for the app with the database dependency pointed at the test engine."""
    from padel_league.api.main import app

    async def override_get_db_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def store():
    """League store with four players, all at the initial rating."""
    league = LeagueStore()
    for name in ("Alice", "Bob", "Carol", "Dave"):
        league.create_player(name)
    return league
