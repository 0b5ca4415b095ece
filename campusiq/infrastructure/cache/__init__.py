# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Redis access."""

from campusiq.infrastructure.cache.redis_client import RedisClient, RedisError

__all__ = ["RedisClient", "RedisError"]
