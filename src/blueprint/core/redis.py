"""Shared Redis client for the read-through cache and the quota ledger.

Redis is optional. When REDIS_URL is unset or the server cannot be reached,
get_redis() returns None and callers degrade: the cache becomes a no-op and
the quota ledger keeps per-process counters.
"""

from redis.asyncio import ConnectionPool, Redis

from src.blueprint.core.config import get_settings
from src.blueprint.core.logging import get_logger

logger = get_logger(__name__)

_pool: ConnectionPool | None = None
_redis: Redis | None = None
_connection_attempted: bool = False


async def get_redis() -> Redis | None:
    """Return the shared client, connecting lazily on first use.

    A failed connection attempt is not retried until close_redis() resets
    the module state.
    """
    global _pool, _redis, _connection_attempted

    if _redis is not None:
        return _redis
    if _connection_attempted:
        return None

    _connection_attempted = True
    settings = get_settings()

    if not settings.redis_url:
        logger.info("Redis not configured (REDIS_URL not set)")
        return None

    try:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        _redis = Redis(connection_pool=_pool)
        await _redis.ping()  # type: ignore[misc]
        logger.info("Redis connected")
        return _redis
    except Exception as e:
        logger.warning("Redis connection failed, running without Redis", error=str(e))
        if _redis:
            await _redis.aclose()
            _redis = None
        if _pool:
            await _pool.disconnect()
            _pool = None
        return None


async def ping_redis() -> str:
    """Report Redis health for the /health endpoint."""
    redis = await get_redis()
    if redis is None:
        return "not_configured"
    try:
        await redis.ping()  # type: ignore[misc]
        return "healthy"
    except Exception as e:
        return f"unhealthy: {e}"


async def close_redis() -> None:
    """Close the connection pool. Called from the application lifespan."""
    global _pool, _redis, _connection_attempted

    if _redis:
        await _redis.aclose()
        logger.info("Redis connection closed")
    if _pool:
        await _pool.disconnect()

    _redis = None
    _pool = None
    _connection_attempted = False


def reset_redis_state() -> None:
    """Forget the cached client. For tests only."""
    global _pool, _redis, _connection_attempted
    _redis = None
    _pool = None
    _connection_attempted = False
