# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependencies for CampusIQ.

Core services are wired once at startup into a ``CampusServices``
container stored on ``app.state.services``. Route handlers reach them
through the dependencies below.

Example:
    @router.get("/tasks")
    async def list_tasks(
        actor: Actor | None = Depends(get_optional_actor),
        boundary: MutationBoundary = Depends(get_boundary),
    ):
        ...
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

from campusiq.core.config import Settings
from campusiq.domains.audit import AuditRecorder, SecurityEventLog, SecurityMonitor
from campusiq.domains.auth import JWTManager
from campusiq.domains.mutation import (
    InMemoryRateLimitBackend,
    MutationBoundary,
    MutationRateLimiter,
    RateLimitBackend,
    RedisRateLimitBackend,
)
from campusiq.domains.sync import RealtimeSynchronizer
from campusiq.infrastructure.cache import RedisClient
from campusiq.infrastructure.dispatch import EventBusDispatcher
from campusiq.infrastructure.events import EventBus
from campusiq.infrastructure.storage import DocumentStore, InMemoryDocumentStore
from campusiq.models.common import Actor

logger = logging.getLogger(__name__)


@dataclass
class CampusServices:
    """Wired core components for one application instance."""

    store: DocumentStore
    boundary: MutationBoundary
    synchronizer: RealtimeSynchronizer
    security_monitor: SecurityMonitor
    dispatcher: EventBusDispatcher
    jwt_manager: JWTManager
    redis: RedisClient | None = None

    async def close(self) -> None:
        """Finish shielded writes, then release subscriptions, pending jobs
        and connections."""
        await self.boundary.drain()
        self.synchronizer.close_all()
        await self.dispatcher.drain()
        if self.redis is not None:
            await self.redis.close()


async def build_services(
    settings: Settings,
    store: DocumentStore | None = None,
) -> CampusServices:
    """Wire the core components from settings.

    Args:
        settings: Application settings.
        store: Document store to use; an in-memory store when omitted.

    Raises:
        RedisError: If the Redis rate-limit backend is configured but
            unreachable.
    """
    store = store or InMemoryDocumentStore()
    bus = getattr(store, "bus", None) or EventBus()

    redis: RedisClient | None = None
    backend: RateLimitBackend
    if settings.rate_limit.backend == "redis":
        redis = RedisClient(settings)
        await redis.connect()
        backend = RedisRateLimitBackend(redis)
        logger.info("Rate limiting backed by Redis at %s", settings.redis.host)
    else:
        backend = InMemoryRateLimitBackend()

    dispatcher = EventBusDispatcher(bus)
    boundary = MutationBoundary(
        store=store,
        audit=AuditRecorder(store, settings.audit),
        rate_limiter=MutationRateLimiter(backend, settings.rate_limit),
        security_log=SecurityEventLog(store),
        dispatcher=dispatcher,
        settings=settings.mutation,
    )
    return CampusServices(
        store=store,
        boundary=boundary,
        synchronizer=RealtimeSynchronizer(store),
        security_monitor=SecurityMonitor(store, settings.security),
        dispatcher=dispatcher,
        jwt_manager=JWTManager(settings.jwt),
        redis=redis,
    )


def get_services(request: Request) -> CampusServices:
    """Get the wired services.

    Raises:
        HTTPException: If the application has not finished starting.
    """
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return services


def get_boundary(request: Request) -> MutationBoundary:
    return get_services(request).boundary


def get_security_monitor(request: Request) -> SecurityMonitor:
    return get_services(request).security_monitor


# =========================================================================
# Authentication Dependencies
# =========================================================================


def get_optional_actor(request: Request) -> Actor | None:
    """Get the authenticated actor, or None."""
    return getattr(request.state, "actor", None)
