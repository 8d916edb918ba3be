"""Tests for quota admission and the usage ledger."""

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st
from redis.asyncio import Redis

from src.blueprint.models.enums import SubscriptionTier
from src.blueprint.services.errors import AdmissionDenied
from src.blueprint.services.quota import (
    DAILY_KEY_TTL,
    MONTHLY_KEY_TTL,
    TIER_LIMITS,
    Denied,
    Granted,
    QuotaGate,
    RedisQuotaLedger,
    TierLimits,
    get_tier_limits,
)
from tests.fakes import InMemoryLedger

pytestmark = pytest.mark.unit

budgets = st.one_of(st.none(), st.integers(min_value=0, max_value=2_000_000))
usage = st.integers(min_value=0, max_value=2_000_000)


def _fixed_clock() -> datetime:
    return datetime(2026, 3, 14, 23, 59, tzinfo=UTC)


class TestTierLimits:
    def test_every_tier_has_limits(self):
        assert set(TIER_LIMITS) == set(SubscriptionTier)

    def test_enterprise_is_unlimited(self):
        limits = get_tier_limits(SubscriptionTier.ENTERPRISE)
        assert limits.monthly_token_quota is None
        assert limits.daily_requests is None

    def test_free_tier_budget(self):
        assert get_tier_limits(SubscriptionTier.FREE) == TierLimits(
            monthly_token_quota=50_000, daily_requests=10
        )


class TestAdmit:
    @given(monthly=budgets, daily=budgets, used=usage, count=usage)
    def test_granted_iff_both_budgets_have_room(self, monthly, daily, used, count):
        """Each budget admits strictly below its limit; None always admits."""
        ledger = InMemoryLedger(monthly_tokens=used, daily_requests=count)
        limits = TierLimits(monthly_token_quota=monthly, daily_requests=daily)

        admission = asyncio.run(QuotaGate(ledger).admit(uuid4(), limits))

        monthly_ok = monthly is None or used < monthly
        daily_ok = daily is None or count < daily
        if monthly_ok and daily_ok:
            assert admission == Granted()
        else:
            assert isinstance(admission, Denied)

    async def test_monthly_denial_reason(self):
        ledger = InMemoryLedger(monthly_tokens=50_000)
        admission = await QuotaGate(ledger).admit(
            uuid4(), get_tier_limits(SubscriptionTier.FREE)
        )
        assert isinstance(admission, Denied)
        assert admission.reason.startswith("Monthly token quota exceeded")

    async def test_daily_denial_reason(self):
        ledger = InMemoryLedger(daily_requests=10)
        admission = await QuotaGate(ledger).admit(
            uuid4(), get_tier_limits(SubscriptionTier.FREE)
        )
        assert isinstance(admission, Denied)
        assert admission.reason.startswith("Daily AI request limit reached")

    async def test_check_raises_admission_denied(self):
        gate = QuotaGate(InMemoryLedger(daily_requests=10))
        with pytest.raises(AdmissionDenied) as exc_info:
            await gate.check(uuid4(), get_tier_limits(SubscriptionTier.FREE))
        assert "Daily AI request limit" in exc_info.value.reason

    async def test_check_passes_when_granted(self):
        gate = QuotaGate(InMemoryLedger())
        await gate.check(uuid4(), get_tier_limits(SubscriptionTier.FREE))


class TestRedisQuotaLedger:
    async def test_keys_use_utc_month_and_day(self):
        ledger = RedisQuotaLedger(clock=_fixed_clock)
        tenant = uuid4()
        assert ledger.monthly_key(tenant) == f"usage:tokens:{tenant}:2026-03"
        assert ledger.daily_key(tenant) == f"usage:requests:{tenant}:2026-03-14"

    async def test_record_usage_increments_both_counters(self, mock_redis: Redis):
        ledger = RedisQuotaLedger(clock=_fixed_clock)
        tenant = uuid4()

        await ledger.record_usage(tenant, 1200)
        await ledger.record_usage(tenant, 300)

        assert await ledger.get_monthly_token_usage(tenant) == 1500
        assert await ledger.get_daily_request_count(tenant) == 2

    async def test_record_usage_sets_expiry(self, mock_redis: Redis):
        ledger = RedisQuotaLedger(clock=_fixed_clock)
        tenant = uuid4()

        await ledger.record_usage(tenant, 10)

        monthly_ttl = await mock_redis.ttl(ledger.monthly_key(tenant))
        daily_ttl = await mock_redis.ttl(ledger.daily_key(tenant))
        assert 0 < monthly_ttl <= MONTHLY_KEY_TTL
        assert 0 < daily_ttl <= DAILY_KEY_TTL

    async def test_concurrent_records_do_not_lose_updates(self, mock_redis: Redis):
        ledger = RedisQuotaLedger(clock=_fixed_clock)
        tenant = uuid4()

        await asyncio.gather(*(ledger.record_usage(tenant, 100) for _ in range(20)))

        assert await ledger.get_monthly_token_usage(tenant) == 2000
        assert await ledger.get_daily_request_count(tenant) == 20

    async def test_unknown_tenant_reads_zero(self, mock_redis: Redis):
        ledger = RedisQuotaLedger()
        assert await ledger.get_monthly_token_usage(uuid4()) == 0
        assert await ledger.get_daily_request_count(uuid4()) == 0

    async def test_falls_back_to_memory_without_redis(self, mock_redis_unavailable: None):
        ledger = RedisQuotaLedger(clock=_fixed_clock)
        tenant = uuid4()

        await asyncio.gather(*(ledger.record_usage(tenant, 50) for _ in range(4)))

        assert await ledger.get_monthly_token_usage(tenant) == 200
        assert await ledger.get_daily_request_count(tenant) == 4

    async def test_tenants_are_isolated(self, mock_redis: Redis):
        ledger = RedisQuotaLedger()
        first, second = uuid4(), uuid4()

        await ledger.record_usage(first, 500)

        assert await ledger.get_monthly_token_usage(second) == 0
        assert await ledger.get_daily_request_count(second) == 0

    async def test_falls_back_when_redis_command_fails(
        self, mock_redis: Redis, monkeypatch: pytest.MonkeyPatch
    ):
        ledger = RedisQuotaLedger(clock=_fixed_clock)
        tenant = uuid4()

        async def _broken_get(*args, **kwargs):
            raise ConnectionError("redis down")

        def _broken_pipeline(*args, **kwargs):
            raise ConnectionError("redis down")

        monkeypatch.setattr(mock_redis, "get", _broken_get)
        monkeypatch.setattr(mock_redis, "pipeline", _broken_pipeline)

        await ledger.record_usage(tenant, 75)

        assert await ledger.get_monthly_token_usage(tenant) == 75
        assert await ledger.get_daily_request_count(tenant) == 1


class TestGateRecordsThroughLedger:
    async def test_record_usage_delegates(self):
        ledger = InMemoryLedger()
        tenant = uuid4()

        await QuotaGate(ledger).record_usage(tenant, 42)

        assert ledger.records == [(tenant, 42)]
