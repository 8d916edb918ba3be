"""Read-through cache for project reads, with graceful fallback.

Entries are JSON strings with a short TTL so staleness heals on its own even
when an invalidation is missed. Writers evict through CacheInvalidator after
every successful mutation. All operations are best-effort: with Redis
unavailable or failing, reads miss and writes/evictions are skipped.
"""

from uuid import UUID

from src.blueprint.core.logging import get_logger
from src.blueprint.core.redis import get_redis

logger = get_logger(__name__)

PREFIX_PROJECT = "project"
PREFIX_PROJECT_LIST = "projects"


def project_cache_key(project_id: UUID) -> str:
    """Key of the single-project entry."""
    return f"{PREFIX_PROJECT}:{project_id}"


def project_list_cache_key(owner_id: UUID) -> str:
    """Key of the owner's first-page project list entry.

    Only the default first page is cached, so it is the only list entry
    that needs evicting.
    """
    return f"{PREFIX_PROJECT_LIST}:{owner_id}:first-page"


async def get_cached(key: str) -> str | None:
    """Return the cached JSON for key, or None on miss or Redis trouble."""
    redis = await get_redis()
    if not redis:
        return None
    try:
        return await redis.get(key)  # type: ignore[no-any-return]
    except Exception as e:
        logger.warning("Cache read failed", key=key, error=str(e))
        return None


async def set_cached(key: str, value: str, ttl: int) -> bool:
    """Store value under key with a TTL in seconds.

    Returns:
        True if stored, False if Redis is unavailable or the write failed
    """
    redis = await get_redis()
    if not redis:
        return False
    try:
        await redis.setex(key, ttl, value)
        return True
    except Exception as e:
        logger.warning("Cache write failed", key=key, error=str(e))
        return False


class CacheInvalidator:
    """Evicts cached reads affected by a project mutation."""

    async def invalidate_project(self, project_id: UUID, owner_id: UUID) -> int:
        """Evict the project entry and the owner's first-page list entry.

        Returns:
            Number of keys actually deleted (0 if Redis is unavailable)
        """
        redis = await get_redis()
        if not redis:
            return 0
        keys = [project_cache_key(project_id), project_list_cache_key(owner_id)]
        try:
            deleted = await redis.delete(*keys)
        except Exception as e:
            logger.warning(
                "Cache invalidation failed",
                project_id=str(project_id),
                error=str(e),
            )
            return 0
        return int(deleted)
