"""Integration test fixtures for database operations.

These fixtures require a PostgreSQL database at DATABASE_URL. Tests are
skipped when it cannot be reached.
"""

from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from src.blueprint.core import db
from src.blueprint.core import redis as redis_core
from src.blueprint.core.config import get_settings
from src.blueprint.models.project import Feature, Project, Screen
from src.blueprint.services.store import SqlArtifactStore


@pytest.fixture(autouse=True)
async def _reset_redis_between_tests() -> AsyncGenerator[None]:
    """Reset Redis state between tests to prevent event loop issues.

    Redis clients hold references to their event loop. When pytest creates
    a new event loop for each test, stale Redis clients cause
    'Event loop is closed' errors.
    """
    redis_core.reset_redis_state()
    yield
    await redis_core.close_redis()


@pytest.fixture(scope="function")
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Create test database engine and make sure the tables exist."""
    await db.dispose_engine()

    settings = get_settings()
    test_engine = create_async_engine(settings.database_url, poolclass=NullPool)
    try:
        async with test_engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
    except (OperationalError, OSError) as e:
        await test_engine.dispose()
        pytest.skip(f"PostgreSQL not available: {e}")

    yield test_engine

    async with test_engine.begin() as conn:
        for table in (Screen, Feature, Project):
            await conn.execute(delete(table))
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for database operations.

    The session does not auto-commit; tests call `await session.commit()`.
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def store(engine: AsyncEngine) -> SqlArtifactStore:
    """Artifact store over the test database."""
    return SqlArtifactStore(
        async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    )
