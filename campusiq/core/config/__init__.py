# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for CampusIQ.

Settings are Pydantic-based and loaded from environment variables.

Example:
    >>> from campusiq.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.rate_limit.limits["task:create"].max_requests
    10
"""

from campusiq.core.config.settings import (
    AuditSettings,
    JWTSettings,
    MutationSettings,
    RateLimitRule,
    RateLimitSettings,
    RedisSettings,
    SecurityMonitorSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "clear_settings_cache",
    # Subsettings
    "RedisSettings",
    "RateLimitRule",
    "RateLimitSettings",
    "MutationSettings",
    "AuditSettings",
    "SecurityMonitorSettings",
    "JWTSettings",
]
