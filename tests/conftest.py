# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Actors for every administrative role and a plain user account
- An in-memory document store and a fully wired mutation boundary
- Request builders for tasks and exams
"""

from collections.abc import Callable
from typing import Any

import pytest

from campusiq.core.config import MutationSettings, RateLimitSettings
from campusiq.domains.audit import AuditRecorder, SecurityEventLog
from campusiq.domains.mutation import (
    InMemoryRateLimitBackend,
    MutationBoundary,
    MutationRateLimiter,
)
from campusiq.infrastructure.storage import InMemoryDocumentStore
from campusiq.models.common import AccountKind, Actor, Role
from campusiq.models.exam import CreateExamRequest
from campusiq.models.task import CreateTaskRequest


# =============================================================================
# Actors
# =============================================================================


@pytest.fixture
def director() -> Actor:
    return Actor(id="director-1", name="Dana Director", role=Role.DIRECTOR)


@pytest.fixture
def dean() -> Actor:
    return Actor(id="dean-1", name="Dev Dean", role=Role.DEAN)


@pytest.fixture
def registrar() -> Actor:
    return Actor(id="registrar-1", name="Riley Registrar", role=Role.REGISTRAR)


@pytest.fixture
def executive() -> Actor:
    return Actor(id="executive-1", name="Eden Executive", role=Role.EXECUTIVE)


@pytest.fixture
def plain_user() -> Actor:
    return Actor(id="user-1", name="Uma User", account=AccountKind.USER)


# =============================================================================
# Core components
# =============================================================================


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Create an empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def unlimited_rate_limits() -> RateLimitSettings:
    """Rate-limit settings with no rules, so tests are never throttled."""
    return RateLimitSettings(limits={}, burst_limits={})


@pytest.fixture
def boundary(
    store: InMemoryDocumentStore,
    unlimited_rate_limits: RateLimitSettings,
) -> MutationBoundary:
    """Create a mutation boundary over the in-memory store."""
    return MutationBoundary(
        store=store,
        audit=AuditRecorder(store),
        rate_limiter=MutationRateLimiter(InMemoryRateLimitBackend(), unlimited_rate_limits),
        security_log=SecurityEventLog(store),
        settings=MutationSettings(default_timeout_seconds=5.0),
    )


# =============================================================================
# Request builders
# =============================================================================


@pytest.fixture
def task_request() -> Callable[..., CreateTaskRequest]:
    """Build a valid task creation request with overrides."""

    def build(**overrides: Any) -> CreateTaskRequest:
        data: dict[str, Any] = {
            "title": "Broken projector",
            "description": "Projector in B-204 does not power on",
            "priority": "MEDIUM",
        }
        data.update(overrides)
        return CreateTaskRequest(**data)

    return build


@pytest.fixture
def exam_request() -> Callable[..., CreateExamRequest]:
    """Build a valid exam creation request with overrides."""

    def build(**overrides: Any) -> CreateExamRequest:
        data: dict[str, Any] = {
            "title": "Calculus Midterm",
            "course_code": "MATH101",
            "course_name": "Calculus I",
            "exam_type": "MIDTERM",
            "scheduled_date": "2025-03-10",
            "start_time": "09:00",
            "end_time": "11:00",
            "duration": 120,
            "room": "R1",
            "capacity": 40,
            "enrolled_students": ["s1", "s2"],
        }
        data.update(overrides)
        return CreateExamRequest(**data)

    return build


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
