# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process event infrastructure.

Components:
- EventBus: async pub/sub with pattern matching
- EventTypes: event type constants

Architecture:
    DocumentStore write -> EventBus.publish("store.<collection>.changed")
    -> RealtimeSynchronizer subscriptions -> ViewState
"""

from campusiq.infrastructure.events.bus import EventBus, EventData, EventHandler
from campusiq.infrastructure.events.types import EventTypes

__all__ = [
    "EventBus",
    "EventData",
    "EventHandler",
    "EventTypes",
]
