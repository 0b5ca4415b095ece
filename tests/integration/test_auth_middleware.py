# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for authentication middleware.

Tests the middleware in isolation from the core services.
"""

from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from pydantic import SecretStr

from campusiq.api.middleware.auth import AuthMiddleware, extract_bearer_token
from campusiq.domains.auth import JWTManager
from campusiq.models.common import Actor


@pytest.fixture
def jwt_settings() -> MagicMock:
    """Create mock JWT settings."""
    settings = MagicMock()
    settings.secret_key = SecretStr("test-secret-key-for-jwt-testing")
    settings.algorithm = "HS256"
    settings.access_token_expire_minutes = 30
    return settings


@pytest.fixture
def jwt_manager(jwt_settings: MagicMock) -> JWTManager:
    """Create JWT manager with test settings."""
    return JWTManager(jwt_settings)


@pytest.fixture
def app(jwt_manager: JWTManager) -> FastAPI:
    """Create a bare app that echoes the authenticated actor."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware, jwt_manager=jwt_manager)

    @app.get("/health")
    async def health(request: Request) -> dict:
        return {"actor": request.state.actor}

    @app.get("/api/v1/whoami")
    async def whoami(request: Request) -> dict:
        actor = request.state.actor
        return {
            "id": actor.id if actor else None,
            "role": actor.role.value if actor and actor.role else None,
        }

    return app


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_public_path_bypasses_auth(self, app: FastAPI, jwt_manager: JWTManager, dean: Actor) -> None:
        """Test that public paths are never authenticated."""
        token = jwt_manager.create_access_token(dean)
        response = TestClient(app).get("/health", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json() == {"actor": None}

    def test_valid_token_sets_actor(self, app: FastAPI, jwt_manager: JWTManager, dean: Actor) -> None:
        """Test that a valid token sets request.state.actor."""
        token = jwt_manager.create_access_token(dean)

        response = TestClient(app).get(
            "/api/v1/whoami", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.json() == {"id": "dean-1", "role": "DEAN"}

    def test_no_token_sets_actor_none(self, app: FastAPI) -> None:
        """Test that a missing token leaves the request anonymous."""
        response = TestClient(app).get("/api/v1/whoami")

        assert response.status_code == 200
        assert response.json()["id"] is None

    def test_invalid_token_sets_actor_none(self, app: FastAPI) -> None:
        """Test that an invalid token leaves the request anonymous."""
        response = TestClient(app).get(
            "/api/v1/whoami", headers={"Authorization": "Bearer invalid-token"}
        )

        assert response.status_code == 200
        assert response.json()["id"] is None

    def test_token_from_other_key_is_ignored(self, app: FastAPI, dean: Actor) -> None:
        other = MagicMock()
        other.secret_key = SecretStr("someone-elses-secret")
        other.algorithm = "HS256"
        other.access_token_expire_minutes = 30
        token = JWTManager(other).create_access_token(dean)

        response = TestClient(app).get(
            "/api/v1/whoami", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.json()["id"] is None


class TestExtractBearerToken:
    """Tests for extract_bearer_token."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            ("Basic abc", None),
            ("Bearer", None),
            ("Bearer a b", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header: str | None, expected: str | None) -> None:
        assert extract_bearer_token(header) == expected
