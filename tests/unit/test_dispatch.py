# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for detached side-effect dispatch."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from campusiq.infrastructure.dispatch import EventBusDispatcher
from campusiq.infrastructure.events import EventBus, EventTypes


class TestEventBusDispatcher:
    """Tests for EventBusDispatcher."""

    @pytest.mark.asyncio
    async def test_job_is_published_in_background(self) -> None:
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe(EventTypes.Jobs.AI_SUMMARY_REQUESTED, handler)
        dispatcher = EventBusDispatcher(bus)

        dispatcher.dispatch(EventTypes.Jobs.AI_SUMMARY_REQUESTED, {"task_id": "t1"})
        assert dispatcher.pending == 1
        await dispatcher.drain()

        handler.assert_awaited_once()
        assert handler.await_args.args[0].payload == {"task_id": "t1"}
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_publish_failure_is_counted(self) -> None:
        bus = MagicMock()
        bus.publish = AsyncMock(side_effect=RuntimeError("bus closed"))
        dispatcher = EventBusDispatcher(bus)

        dispatcher.dispatch(EventTypes.Jobs.NOTIFY_STATUS_CHANGED, {})
        await dispatcher.drain()

        assert dispatcher.failed == 1

    def test_dispatch_without_loop_is_dropped(self) -> None:
        dispatcher = EventBusDispatcher(EventBus())

        dispatcher.dispatch(EventTypes.Jobs.NOTIFY_ADMINS_HIGH_PRIORITY, {})

        assert dispatcher.failed == 1
        assert dispatcher.pending == 0
