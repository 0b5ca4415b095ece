# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Async Redis client used for shared rate-limit counters.

Only the counter primitives the rate limiter needs are exposed: INCR,
EXPIRE, TTL and DEL. Every redis-py failure surfaces as ``RedisError``.

Example:
    client = RedisClient(settings)
    await client.connect()
    count = await client.incr("ratelimit:task:create:u1")
    await client.close()
"""

from typing import TYPE_CHECKING, Any, Awaitable, Optional

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError as BaseRedisError

if TYPE_CHECKING:
    from campusiq.core.config.settings import Settings


class RedisError(Exception):
    """A Redis command or connection failed.

    Attributes:
        message: What was being attempted.
        original_error: The redis-py exception, when there was one.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class RedisClient:
    """Pooled redis-py connection for counter keys."""

    def __init__(self, settings: "Settings") -> None:
        self._settings = settings
        self._pool: Optional[ConnectionPool] = None
        self._redis: Optional[Redis] = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    async def connect(self) -> None:
        """Open the pool and PING once so misconfiguration fails at startup."""
        redis_settings = self._settings.redis
        self._pool = ConnectionPool.from_url(
            redis_settings.url,
            max_connections=redis_settings.max_connections,
            decode_responses=True,
        )
        self._redis = Redis(connection_pool=self._pool)
        await self._run(self._redis.ping(), f"Failed to connect to Redis at {redis_settings.host}")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None

    def _client(self) -> Redis:
        if self._redis is None:
            raise RedisError("Redis client not connected; call connect() first")
        return self._redis

    @staticmethod
    async def _run(command: Awaitable[Any], failure: str) -> Any:
        try:
            return await command
        except BaseRedisError as e:
            raise RedisError(failure, e) from e

    async def incr(self, key: str) -> int:
        """Increment a counter, creating it at 1."""
        return int(await self._run(self._client().incr(key), f"INCR failed for {key}"))

    async def expire(self, key: str, seconds: int) -> bool:
        """Set a key's expiry. False when the key does not exist."""
        return bool(
            await self._run(self._client().expire(key, seconds), f"EXPIRE failed for {key}")
        )

    async def ttl(self, key: str) -> int:
        """Seconds until expiry; -1 without an expiry, -2 for a missing key."""
        return int(await self._run(self._client().ttl(key), f"TTL failed for {key}"))

    async def delete(self, key: str) -> bool:
        return bool(await self._run(self._client().delete(key), f"DEL failed for {key}"))
