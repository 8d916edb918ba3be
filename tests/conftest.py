"""Root test fixtures shared across all test types.

Database-specific fixtures are in tests/integration/conftest.py.
"""

import os

# Settings are read at import time; set the environment before any app import
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("RESEND_API_KEY", "")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator, Generator

import pytest
from fakeredis import aioredis as fakeredis_aio
from redis.asyncio import Redis

from src.blueprint.core import redis as redis_core
from src.blueprint.core.config import get_settings
from src.blueprint.services import quota
from tests.fakes import PipelineHarness

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()

# Modules that import get_redis by name
_GET_REDIS_TARGETS = (
    "src.blueprint.core.redis.get_redis",
    "src.blueprint.core.cache.get_redis",
    "src.blueprint.services.quota.get_redis",
)


@pytest.fixture(autouse=True)
def reset_usage_counters() -> Generator[None]:
    """Start every test with an empty in-memory quota ledger."""
    quota._usage_counters.clear()
    yield
    quota._usage_counters.clear()


# --- Redis Test Fixtures (shared) ---


@pytest.fixture
async def fake_redis() -> AsyncGenerator[Redis]:
    """Provides a fakeredis client for testing.

    Returns an in-memory Redis implementation that behaves like
    a real Redis server but doesn't require external dependencies.
    """
    client = fakeredis_aio.FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
async def mock_redis(fake_redis: Redis, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[Redis]:
    """Patches get_redis() to return the fakeredis client everywhere it is used."""
    redis_core.reset_redis_state()

    async def _get_fake_redis() -> Redis:
        return fake_redis

    for target in _GET_REDIS_TARGETS:
        monkeypatch.setattr(target, _get_fake_redis)
    yield fake_redis
    redis_core.reset_redis_state()


@pytest.fixture
async def mock_redis_unavailable(monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None]:
    """Patches get_redis() to return None (simulates Redis unavailable)."""
    redis_core.reset_redis_state()

    async def _get_none() -> None:
        return None

    for target in _GET_REDIS_TARGETS:
        monkeypatch.setattr(target, _get_none)
    yield
    redis_core.reset_redis_state()


# --- Pipeline Fixtures ---


@pytest.fixture
def harness() -> PipelineHarness:
    """Pipeline service and orchestrators over in-memory collaborators."""
    return PipelineHarness()
