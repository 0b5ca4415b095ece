# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI Application Factory.

This module provides the main application factory for the CampusIQ API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from campusiq import __version__
from campusiq.api.dependencies import build_services
from campusiq.api.errors import mutation_error_handler
from campusiq.api.middleware.auth import AuthMiddleware
from campusiq.api.v1 import router as v1_router
from campusiq.core.config import Settings, get_settings
from campusiq.domains.auth import JWTManager
from campusiq.domains.mutation import MutationError
from campusiq.infrastructure.storage import DocumentStore
from campusiq.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    store: DocumentStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when
            omitted.
        store: Document store; an in-memory store when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Wire the core services at startup and release them at shutdown."""
        setup_logging(settings)
        logger.info(
            "Starting CampusIQ API (environment=%s, rate_limit_backend=%s)",
            settings.environment,
            settings.rate_limit.backend,
        )

        # =====================================================================
        # Startup
        # =====================================================================
        app.state.services = await build_services(settings, store)

        yield

        # =====================================================================
        # Shutdown
        # =====================================================================
        try:
            await app.state.services.close()
        except Exception as e:
            logger.warning("Error closing services: %s", str(e))
        app.state.services = None
        logger.info("Shutting down CampusIQ API")

    app = FastAPI(
        title="CampusIQ API",
        description="Authorization-gated task and exam operations",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
        redirect_slashes=False,
    )

    # =========================================================================
    # Exception handlers
    # =========================================================================
    app.add_exception_handler(MutationError, mutation_error_handler)

    # =========================================================================
    # Middleware
    # =========================================================================
    app.add_middleware(AuthMiddleware, jwt_manager=JWTManager(settings.jwt))

    # =========================================================================
    # Routes
    # =========================================================================
    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    app.include_router(v1_router)

    return app
