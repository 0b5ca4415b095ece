# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Per-caller, per-action-class rate limiting for mutations.

Counters use fixed windows with increment-then-compare semantics: each
hit atomically increments the counter and the request is allowed only if
the new count is within the limit. Two concurrent requests can therefore
never both take the last slot.

Unlike background dispatch limiting, the mutation limiter does not fail
open. A counter backend failure surfaces as RateLimitBackendError.

Example:
    limiter = MutationRateLimiter(InMemoryRateLimitBackend(), settings.rate_limit)
    decision = await limiter.check("task:create", actor.id)
    if not decision.allowed:
        ...
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from typing import Callable

from campusiq.core.config import RateLimitRule, RateLimitSettings
from campusiq.infrastructure.cache import RedisClient, RedisError

logger = logging.getLogger(__name__)


class RateLimitBackendError(Exception):
    """Raised when rate-limit counters cannot be read or written."""

    def __init__(self, message: str, original_error: Exception | None = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


@dataclass(frozen=True)
class WindowState:
    """Counter state after one hit.

    Attributes:
        count: Hits in the current window, including this one.
        retry_after: Seconds until the window resets.
    """

    count: int
    retry_after: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a rate-limit check.

    Attributes:
        allowed: Whether the request may proceed.
        action_class: Action class checked.
        retry_after: Seconds to wait when denied.
        burst: True when the burst rule denied the request.
        count: Counter value of the denying rule.
        limit: Limit of the denying rule.
    """

    allowed: bool
    action_class: str
    retry_after: int | None = None
    burst: bool = False
    count: int = 0
    limit: int = 0


class RateLimitBackend(ABC):
    """Atomic counter storage for fixed windows."""

    @abstractmethod
    async def hit(self, key: str, rule: RateLimitRule) -> WindowState:
        """Increment the counter for ``key`` and return its window state.

        Raises:
            RateLimitBackendError: If the counter store fails.
        """

    async def reset(self, key: str) -> None:
        """Forget the counter for ``key``."""


class InMemoryRateLimitBackend(RateLimitBackend):
    """Process-local counters serialized by an asyncio lock.

    Args:
        clock: Monotonic time source in seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, rule: RateLimitRule) -> WindowState:
        async with self._lock:
            now = self._clock()
            started, count = self._windows.get(key, (now, 0))
            if now - started >= rule.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[key] = (started, count)
            remaining = started + rule.window_seconds - now
        return WindowState(count=count, retry_after=max(1, math.ceil(remaining)))

    async def reset(self, key: str) -> None:
        async with self._lock:
            self._windows.pop(key, None)


class RedisRateLimitBackend(RateLimitBackend):
    """Counters shared across workers through Redis INCR and EXPIRE."""

    def __init__(self, client: RedisClient) -> None:
        self._client = client

    async def hit(self, key: str, rule: RateLimitRule) -> WindowState:
        try:
            count = await self._client.incr(key)
            if count == 1:
                await self._client.expire(key, rule.window_seconds)
                return WindowState(count=count, retry_after=rule.window_seconds)
            ttl = await self._client.ttl(key)
            if ttl < 0:
                # Expiry was lost (crash between INCR and EXPIRE); restore it.
                await self._client.expire(key, rule.window_seconds)
                ttl = rule.window_seconds
            return WindowState(count=count, retry_after=max(1, ttl))
        except RedisError as e:
            raise RateLimitBackendError(f"Rate limit counter failed: {key}", e) from e

    async def reset(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as e:
            raise RateLimitBackendError(f"Rate limit reset failed: {key}", e) from e


class MutationRateLimiter:
    """Applies configured rate and burst rules to boundary calls.

    Attributes:
        backend: Counter storage.
        settings: Per action class rules.
    """

    def __init__(
        self,
        backend: RateLimitBackend,
        settings: RateLimitSettings | None = None,
    ) -> None:
        self.backend = backend
        self.settings = settings or RateLimitSettings()
        self._violations: Counter[str] = Counter()

    @staticmethod
    def key(action_class: str, actor_id: str, burst: bool = False) -> str:
        """Counter key for one caller and action class."""
        prefix = f"{action_class}:burst" if burst else action_class
        return f"ratelimit:{prefix}:{actor_id}"

    def violations(self, actor_id: str) -> int:
        """Denied requests seen for ``actor_id`` by this process."""
        return self._violations[actor_id]

    async def check(self, action_class: str, actor_id: str) -> RateLimitDecision:
        """Count one request against every rule for ``action_class``.

        The hourly rule is checked first, then the burst rule. Action
        classes without rules are always allowed.

        Raises:
            RateLimitBackendError: If the counter store fails.
        """
        rules: list[tuple[RateLimitRule, bool]] = []
        if action_class in self.settings.limits:
            rules.append((self.settings.limits[action_class], False))
        if action_class in self.settings.burst_limits:
            rules.append((self.settings.burst_limits[action_class], True))

        for rule, burst in rules:
            state = await self.backend.hit(self.key(action_class, actor_id, burst), rule)
            if state.count > rule.max_requests:
                self._violations[actor_id] += 1
                logger.warning(
                    "Rate limited: %s on %s (count: %d, max: %d, burst: %s)",
                    actor_id,
                    action_class,
                    state.count,
                    rule.max_requests,
                    burst,
                )
                return RateLimitDecision(
                    allowed=False,
                    action_class=action_class,
                    retry_after=state.retry_after,
                    burst=burst,
                    count=state.count,
                    limit=rule.max_requests,
                )

        return RateLimitDecision(allowed=True, action_class=action_class)

    async def reset(self, action_class: str, actor_id: str) -> None:
        """Clear both windows for a caller."""
        await self.backend.reset(self.key(action_class, actor_id))
        await self.backend.reset(self.key(action_class, actor_id, burst=True))
