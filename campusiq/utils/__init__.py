# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for CampusIQ.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- datetime: Timezone-aware datetime and clock-time operations
"""

from campusiq.utils.datetime import (
    clock_to_minutes,
    ensure_utc,
    is_clock_time,
    parse_calendar_date,
    seconds_to_human,
    utc_now,
)
from campusiq.utils.logging import (
    bind_context,
    get_logger,
    setup_logging,
    unbind_context,
)

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    # Datetime
    "utc_now",
    "ensure_utc",
    "is_clock_time",
    "clock_to_minutes",
    "parse_calendar_date",
    "seconds_to_human",
]
