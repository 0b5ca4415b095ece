# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam scheduling."""

from campusiq.domains.scheduling.conflicts import (
    capacity_warnings,
    detect_conflicts,
    intervals_overlap,
    schedule_warnings,
)

__all__ = [
    "capacity_warnings",
    "detect_conflicts",
    "intervals_overlap",
    "schedule_warnings",
]
