# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for CampusIQ.

All timestamps written to the document store are timezone-aware UTC.
Exam clock times are kept as "HH:mm" strings and compared as
minute-of-day integers on a single calendar date.

Usage:
------
    from campusiq.utils.datetime import utc_now, clock_to_minutes

    created_at = utc_now()
    start = clock_to_minutes("09:30")  # 570
"""

import re
from datetime import date, datetime, timezone

_CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat a naive datetime as UTC; convert an aware one to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_clock_time(value: str) -> bool:
    """Check whether a string is a 24-hour "HH:mm" clock time."""
    return bool(_CLOCK_PATTERN.match(value))


def clock_to_minutes(value: str) -> int:
    """Convert an "HH:mm" clock time to minutes since midnight.

    Args:
        value: Clock time such as "09:30".

    Returns:
        Minute-of-day offset in the range 0..1439.

    Raises:
        ValueError: If the value is not a valid "HH:mm" time.
    """
    match = _CLOCK_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid clock time: {value!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def parse_calendar_date(value: str) -> date:
    """Parse an ISO date or datetime string into a UTC calendar date.

    Args:
        value: "YYYY-MM-DD" or a full ISO 8601 datetime.

    Returns:
        The calendar date, taken in UTC for datetimes.

    Raises:
        ValueError: If the value is not ISO 8601.
    """
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    return ensure_utc(parsed).date()


def seconds_to_human(seconds: int) -> str:
    """Render a wait as "45s", "1m 30s" or "2h 5m"."""
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"
