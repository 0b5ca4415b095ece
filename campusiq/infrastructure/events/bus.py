# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-process async event bus.

Store change notifications and detached side-effect jobs travel over the
bus as typed event strings. Subscribers register for an exact type
("store.tasks.changed") or an fnmatch pattern ("store.*.changed").

Example:
    bus = EventBus()

    async def on_task_change(event: EventData) -> None:
        print(event.payload["document_id"])

    bus.subscribe(EventTypes.Store.changed("tasks"), on_task_change)
    await bus.publish(EventTypes.Store.changed("tasks"), {"document_id": "t1"})
"""

import asyncio
import fnmatch
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable
from uuid import uuid4

logger = logging.getLogger(__name__)

EventHandler = Callable[["EventData"], Awaitable[None]]


def _is_pattern(event_type: str) -> bool:
    return "*" in event_type or "?" in event_type


@dataclass
class EventData:
    """An event as delivered to handlers.

    Attributes:
        event_type: The event type string.
        payload: Event payload.
        event_id: Unique event identifier.
        timestamp: When the event was published.
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class EventBus:
    """Async publish/subscribe with wildcard pattern support.

    Handlers for one event run concurrently. A failing handler is logged
    and never affects the publisher or the other handlers.

    The bus is meant for single-threaded asyncio use inside one process.
    Each document store owns its own bus; there is no global instance.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._pattern_handlers: dict[str, list[EventHandler]] = {}
        self._event_count = 0

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """Subscribe a handler to an event type or pattern.

        Args:
            event_type: Event type string or pattern with wildcards.
            handler: Async callable receiving the EventData.
        """
        registry = self._pattern_handlers if _is_pattern(event_type) else self._handlers
        registry.setdefault(event_type, []).append(handler)
        logger.debug("Subscribed handler to: %s", event_type)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """Unsubscribe a handler.

        Returns:
            True if the handler was registered and has been removed.
        """
        registry = self._pattern_handlers if _is_pattern(event_type) else self._handlers
        handlers = registry.get(event_type)
        if not handlers:
            return False
        try:
            handlers.remove(handler)
        except ValueError:
            return False
        if not handlers:
            del registry[event_type]
        return True

    def _matching(self, event_type: str) -> list[EventHandler]:
        matched = list(self._handlers.get(event_type, ()))
        for pattern, handlers in self._pattern_handlers.items():
            if fnmatch.fnmatch(event_type, pattern):
                matched.extend(handlers)
        return matched

    async def publish(self, event_type: str, payload: dict[str, Any]) -> EventData:
        """Publish an event to all matching subscribers.

        Args:
            event_type: The event type string.
            payload: Event data dictionary.

        Returns:
            The published EventData.
        """
        event = EventData(event_type=event_type, payload=payload)
        self._event_count += 1

        handlers = self._matching(event_type)
        if not handlers:
            logger.debug("No handlers for event: %s", event_type)
            return event

        logger.debug("Publishing event %s to %d handlers", event_type, len(handlers))

        async def safe_call(handler: EventHandler) -> None:
            try:
                await handler(event)
            except Exception as e:
                logger.error(
                    "Handler error for event %s: %s",
                    event_type,
                    str(e),
                    exc_info=True,
                )

        await asyncio.gather(
            *[safe_call(handler) for handler in handlers],
            return_exceptions=True,
        )
        return event

    def handler_count(self, event_type: str | None = None) -> int:
        """Number of registered handlers, optionally for one exact key."""
        if event_type is not None:
            registry = self._pattern_handlers if _is_pattern(event_type) else self._handlers
            return len(registry.get(event_type, ()))
        return sum(len(h) for h in self._handlers.values()) + sum(
            len(h) for h in self._pattern_handlers.values()
        )

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()
        self._pattern_handlers.clear()

    def get_stats(self) -> dict[str, Any]:
        """Subscription and event counts."""
        return {
            "exact_subscriptions": len(self._handlers),
            "pattern_subscriptions": len(self._pattern_handlers),
            "total_handlers": self.handler_count(),
            "events_published": self._event_count,
        }
