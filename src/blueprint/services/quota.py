"""Per-tenant admission control for generation calls.

Two budgets gate every call: tokens used this calendar month and generation
requests made today (both UTC). Usage is debited only after a call succeeds
and its result parses, so a failed call never costs quota.

The ledger lives in Redis when configured. Without Redis, or when a Redis
command fails, counters fall back to per-process memory (not shared between
workers).
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from src.blueprint.core.logging import get_logger
from src.blueprint.core.redis import get_redis
from src.blueprint.models.enums import SubscriptionTier
from src.blueprint.services.errors import AdmissionDenied

logger = get_logger(__name__)

PREFIX_MONTHLY_TOKENS = "usage:tokens"
PREFIX_DAILY_REQUESTS = "usage:requests"

# Keys outlive their period slightly so late reads near midnight still see them
MONTHLY_KEY_TTL = 35 * 24 * 3600
DAILY_KEY_TTL = 2 * 24 * 3600


@dataclass(frozen=True)
class TierLimits:
    """Budgets of a tier. None means unlimited."""

    monthly_token_quota: int | None
    daily_requests: int | None


TIER_LIMITS: dict[SubscriptionTier, TierLimits] = {
    SubscriptionTier.FREE: TierLimits(monthly_token_quota=50_000, daily_requests=10),
    SubscriptionTier.STARTER: TierLimits(monthly_token_quota=200_000, daily_requests=50),
    SubscriptionTier.PRO: TierLimits(monthly_token_quota=1_000_000, daily_requests=200),
    SubscriptionTier.ENTERPRISE: TierLimits(monthly_token_quota=None, daily_requests=None),
}


def get_tier_limits(tier: SubscriptionTier) -> TierLimits:
    return TIER_LIMITS[tier]


@dataclass(frozen=True)
class Granted:
    pass


@dataclass(frozen=True)
class Denied:
    reason: str


Admission = Granted | Denied


class QuotaLedger(Protocol):
    async def get_monthly_token_usage(self, tenant_id: UUID) -> int: ...

    async def get_daily_request_count(self, tenant_id: UUID) -> int: ...

    async def record_usage(self, tenant_id: UUID, tokens: int) -> None: ...


# In-memory fallback storage, keyed like the Redis keys
_usage_counters: dict[str, int] = defaultdict(int)
_usage_lock = asyncio.Lock()


def _utc_now() -> datetime:
    return datetime.now(UTC)


class RedisQuotaLedger:
    """Quota counters in Redis with an in-process fallback."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self._clock = clock

    def monthly_key(self, tenant_id: UUID) -> str:
        return f"{PREFIX_MONTHLY_TOKENS}:{tenant_id}:{self._clock():%Y-%m}"

    def daily_key(self, tenant_id: UUID) -> str:
        return f"{PREFIX_DAILY_REQUESTS}:{tenant_id}:{self._clock():%Y-%m-%d}"

    async def get_monthly_token_usage(self, tenant_id: UUID) -> int:
        return await self._read(self.monthly_key(tenant_id))

    async def get_daily_request_count(self, tenant_id: UUID) -> int:
        return await self._read(self.daily_key(tenant_id))

    async def record_usage(self, tenant_id: UUID, tokens: int) -> None:
        """Add tokens to the monthly counter and one request to today's counter.

        Both increments go through a single MULTI/EXEC so concurrent
        successful calls from one tenant never lose updates.
        """
        monthly_key = self.monthly_key(tenant_id)
        daily_key = self.daily_key(tenant_id)

        redis = await get_redis()
        if redis:
            try:
                pipe = redis.pipeline(transaction=True)
                pipe.incrby(monthly_key, tokens)
                pipe.expire(monthly_key, MONTHLY_KEY_TTL)
                pipe.incr(daily_key)
                pipe.expire(daily_key, DAILY_KEY_TTL)
                await pipe.execute()
                return
            except Exception as e:
                logger.warning(
                    "Redis usage write failed, falling back to in-memory",
                    error=str(e),
                    tenant_id=str(tenant_id),
                )

        async with _usage_lock:
            _usage_counters[monthly_key] += tokens
            _usage_counters[daily_key] += 1

    async def _read(self, key: str) -> int:
        redis = await get_redis()
        if redis:
            try:
                value = await redis.get(key)
                return int(value) if value is not None else 0
            except Exception as e:
                logger.warning(
                    "Redis usage read failed, falling back to in-memory",
                    error=str(e),
                    key=key,
                )
        async with _usage_lock:
            return _usage_counters.get(key, 0)


class QuotaGate:
    """Decides whether a tenant may make another generation call."""

    def __init__(self, ledger: QuotaLedger):
        self._ledger = ledger

    async def admit(self, tenant_id: UUID, limits: TierLimits) -> Admission:
        if limits.monthly_token_quota is not None:
            used = await self._ledger.get_monthly_token_usage(tenant_id)
            if used >= limits.monthly_token_quota:
                return Denied(
                    reason=(
                        f"Monthly token quota exceeded. You have used {used} of "
                        f"{limits.monthly_token_quota} tokens. Please upgrade your plan."
                    )
                )

        if limits.daily_requests is not None:
            count = await self._ledger.get_daily_request_count(tenant_id)
            if count >= limits.daily_requests:
                return Denied(
                    reason=(
                        f"Daily AI request limit reached. You have used {count} of "
                        f"{limits.daily_requests} daily requests. "
                        "Try again tomorrow or upgrade your plan."
                    )
                )

        return Granted()

    async def check(self, tenant_id: UUID, limits: TierLimits) -> None:
        """Raise AdmissionDenied if admit() denies."""
        admission = await self.admit(tenant_id, limits)
        if isinstance(admission, Denied):
            logger.info("Generation denied by quota", tenant_id=str(tenant_id))
            raise AdmissionDenied(admission.reason)

    async def record_usage(self, tenant_id: UUID, tokens: int) -> None:
        await self._ledger.record_usage(tenant_id, tokens)
