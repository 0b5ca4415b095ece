# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event type constants.

Constants instead of string literals keep publishers and subscribers in
agreement on event names.
"""


class EventTypes:
    """Event types organized by concern."""

    class Store:
        """Document store change notifications."""

        PATTERN = "store.*.changed"

        @staticmethod
        def changed(collection: str) -> str:
            """Event type for a change in ``collection``."""
            return f"store.{collection}.changed"

    class Jobs:
        """Detached side-effect jobs."""

        AI_SUMMARY_REQUESTED = "ai_summary.requested"
        NOTIFY_ADMINS_HIGH_PRIORITY = "notify.admins.high_priority"
        NOTIFY_STATUS_CHANGED = "notify.status_changed"
