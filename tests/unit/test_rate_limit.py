# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for mutation rate limiting."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from campusiq.core.config import RateLimitRule, RateLimitSettings
from campusiq.domains.mutation import (
    InMemoryRateLimitBackend,
    MutationRateLimiter,
    RateLimitBackendError,
    RedisRateLimitBackend,
)
from campusiq.infrastructure.cache import RedisError


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def limiter_with(
    limit: int | None = None,
    burst: int | None = None,
    clock: FakeClock | None = None,
) -> MutationRateLimiter:
    limits = {}
    burst_limits = {}
    if limit is not None:
        limits["task:create"] = RateLimitRule(max_requests=limit, window_seconds=3600)
    if burst is not None:
        burst_limits["task:create"] = RateLimitRule(max_requests=burst, window_seconds=60)
    backend = InMemoryRateLimitBackend(clock=clock or FakeClock())
    return MutationRateLimiter(
        backend, RateLimitSettings(limits=limits, burst_limits=burst_limits)
    )


class TestMutationRateLimiter:
    """Tests for MutationRateLimiter with the in-memory backend."""

    @pytest.mark.asyncio
    async def test_limit_plus_one_is_denied_exactly_once(self) -> None:
        limiter = limiter_with(limit=10)

        decisions = [await limiter.check("task:create", "u1") for _ in range(11)]

        assert [d.allowed for d in decisions].count(False) == 1
        assert not decisions[-1].allowed
        assert decisions[-1].retry_after == 3600
        assert decisions[-1].limit == 10
        assert limiter.violations("u1") == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests_cannot_share_last_slot(self) -> None:
        limiter = limiter_with(limit=10)

        decisions = await asyncio.gather(
            *[limiter.check("task:create", "u1") for _ in range(11)]
        )

        assert sum(1 for d in decisions if d.allowed) == 10

    @pytest.mark.asyncio
    async def test_callers_are_counted_separately(self) -> None:
        limiter = limiter_with(limit=1)

        assert (await limiter.check("task:create", "u1")).allowed
        assert (await limiter.check("task:create", "u2")).allowed
        assert not (await limiter.check("task:create", "u1")).allowed

    @pytest.mark.asyncio
    async def test_burst_rule_denies_before_hourly_rule(self) -> None:
        limiter = limiter_with(limit=10, burst=3)

        decisions = [await limiter.check("task:create", "u1") for _ in range(4)]

        assert [d.allowed for d in decisions] == [True, True, True, False]
        assert decisions[-1].burst
        assert decisions[-1].retry_after == 60

    @pytest.mark.asyncio
    async def test_window_resets(self) -> None:
        clock = FakeClock()
        limiter = limiter_with(burst=1, clock=clock)

        assert (await limiter.check("task:create", "u1")).allowed
        denied = await limiter.check("task:create", "u1")
        clock.now += 45
        still_denied = await limiter.check("task:create", "u1")
        clock.now += 15

        assert not denied.allowed
        assert still_denied.retry_after == 15
        assert (await limiter.check("task:create", "u1")).allowed

    @pytest.mark.asyncio
    async def test_class_without_rule_is_always_allowed(self) -> None:
        limiter = limiter_with(limit=1)

        for _ in range(5):
            assert (await limiter.check("exam:delete", "u1")).allowed

    @pytest.mark.asyncio
    async def test_reset_clears_both_windows(self) -> None:
        limiter = limiter_with(limit=1, burst=1)
        await limiter.check("task:create", "u1")

        await limiter.reset("task:create", "u1")

        assert (await limiter.check("task:create", "u1")).allowed

    def test_default_rules(self) -> None:
        settings = RateLimitSettings()

        assert settings.limits["task:create"].max_requests == 10
        assert settings.limits["task:comment"].max_requests == 50
        assert settings.burst_limits["task:create"].max_requests == 3
        assert "exam:delete" not in settings.limits


class TestRedisRateLimitBackend:
    """Tests for the Redis counter backend."""

    @pytest.fixture
    def client(self) -> MagicMock:
        client = MagicMock()
        client.incr = AsyncMock(return_value=1)
        client.expire = AsyncMock(return_value=True)
        client.ttl = AsyncMock(return_value=42)
        client.delete = AsyncMock(return_value=True)
        return client

    @pytest.mark.asyncio
    async def test_first_hit_sets_expiry(self, client: MagicMock) -> None:
        backend = RedisRateLimitBackend(client)
        rule = RateLimitRule(max_requests=10, window_seconds=3600)

        state = await backend.hit("ratelimit:task:create:u1", rule)

        assert state.count == 1
        assert state.retry_after == 3600
        client.expire.assert_awaited_once_with("ratelimit:task:create:u1", 3600)
        client.ttl.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_later_hit_reads_ttl(self, client: MagicMock) -> None:
        client.incr.return_value = 4
        backend = RedisRateLimitBackend(client)

        state = await backend.hit("k", RateLimitRule(max_requests=10, window_seconds=3600))

        assert state.count == 4
        assert state.retry_after == 42
        client.expire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_expiry_is_restored(self, client: MagicMock) -> None:
        client.incr.return_value = 2
        client.ttl.return_value = -1
        backend = RedisRateLimitBackend(client)

        state = await backend.hit("k", RateLimitRule(max_requests=10, window_seconds=60))

        assert state.retry_after == 60
        client.expire.assert_awaited_once_with("k", 60)

    @pytest.mark.asyncio
    async def test_redis_failure_raises_backend_error(self, client: MagicMock) -> None:
        client.incr.side_effect = RedisError("connection refused")
        limiter = MutationRateLimiter(RedisRateLimitBackend(client), RateLimitSettings())

        with pytest.raises(RateLimitBackendError) as exc_info:
            await limiter.check("task:create", "u1")

        assert isinstance(exc_info.value.original_error, RedisError)

    @pytest.mark.asyncio
    async def test_key_layout(self, client: MagicMock) -> None:
        limiter = MutationRateLimiter(RedisRateLimitBackend(client), RateLimitSettings())

        await limiter.check("task:create", "u1")

        keys = [call.args[0] for call in client.incr.await_args_list]
        assert keys == ["ratelimit:task:create:u1", "ratelimit:task:create:burst:u1"]
