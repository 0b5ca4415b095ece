# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the in-process event bus."""

from unittest.mock import AsyncMock

import pytest

from campusiq.infrastructure.events import EventBus, EventData, EventTypes


class TestEventBus:
    """Tests for EventBus."""

    @pytest.mark.asyncio
    async def test_exact_subscription(self) -> None:
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe(EventTypes.Store.changed("tasks"), handler)

        event = await bus.publish("store.tasks.changed", {"document_id": "t1"})

        handler.assert_awaited_once_with(event)
        assert isinstance(event, EventData)
        assert event.payload == {"document_id": "t1"}

    @pytest.mark.asyncio
    async def test_pattern_subscription(self) -> None:
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe(EventTypes.Store.PATTERN, handler)

        await bus.publish("store.exams.changed", {})
        await bus.publish("ai_summary.requested", {})

        assert handler.await_count == 1

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_affect_others(self) -> None:
        bus = EventBus()
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        healthy = AsyncMock()
        bus.subscribe("notify.status_changed", failing)
        bus.subscribe("notify.status_changed", healthy)

        await bus.publish("notify.status_changed", {"task_id": "t1"})

        failing.assert_awaited_once()
        healthy.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe("store.tasks.changed", handler)

        assert bus.unsubscribe("store.tasks.changed", handler)
        assert not bus.unsubscribe("store.tasks.changed", handler)
        await bus.publish("store.tasks.changed", {})

        handler.assert_not_awaited()
        assert bus.handler_count() == 0

    @pytest.mark.asyncio
    async def test_stats(self) -> None:
        bus = EventBus()
        bus.subscribe("store.tasks.changed", AsyncMock())
        bus.subscribe("store.*.changed", AsyncMock())

        await bus.publish("store.tasks.changed", {})
        stats = bus.get_stats()

        assert stats["exact_subscriptions"] == 1
        assert stats["pattern_subscriptions"] == 1
        assert stats["total_handlers"] == 2
        assert stats["events_published"] == 1

        bus.clear()
        assert bus.handler_count() == 0
