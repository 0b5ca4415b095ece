# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Detached side-effect dispatch.

Notifications and AI-summary requests are handed off as detached jobs.
``dispatch`` returns immediately and never raises for a job failure, so
the outcome of a mutation never depends on its side effects.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

from campusiq.infrastructure.events import EventBus

logger = logging.getLogger(__name__)


class SideEffectDispatcher(ABC):
    """Interface for handing off best-effort work."""

    @abstractmethod
    def dispatch(self, job_type: str, payload: dict[str, Any]) -> None:
        """Schedule a detached job. Must not block or raise."""

    async def drain(self) -> None:
        """Wait for in-flight jobs. A no-op unless the dispatcher tracks them."""


class EventBusDispatcher(SideEffectDispatcher):
    """Publishes each job on an EventBus from a background task.

    In-flight tasks are referenced until they finish, so they are not
    garbage collected mid-run, and ``drain`` can await them on shutdown.

    Args:
        bus: Bus the jobs are published on. Job handlers subscribe to the
            job type.
    """

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus
        self._pending: set[asyncio.Task[None]] = set()
        self._failed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def failed(self) -> int:
        return self._failed

    def dispatch(self, job_type: str, payload: dict[str, Any]) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self._run(job_type, payload))
        except RuntimeError:
            logger.warning("No running loop, dropping job %s", job_type)
            self._failed += 1
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug("Dispatched job %s", job_type)

    async def _run(self, job_type: str, payload: dict[str, Any]) -> None:
        try:
            await self._bus.publish(job_type, payload)
        except Exception as e:
            self._failed += 1
            logger.warning("Side-effect job %s failed: %s", job_type, str(e))

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
