# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mutation boundary for tasks and exams.

Components:
- MutationBoundary: the authoritative, ordered write path
- MutationRateLimiter: per caller and action class counters
- ClientMutationWrapper: error-to-message translation for callers
"""

from campusiq.domains.mutation.errors import (
    ErrorKind,
    FailedPreconditionError,
    InvalidArgumentError,
    MutationError,
    MutationTimeoutError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    StorageUnavailableError,
    VersionConflictError,
)
from campusiq.domains.mutation.messages import (
    ClientMutationWrapper,
    MutationOutcome,
    roles_holding,
    user_message,
)
from campusiq.domains.mutation.rate_limit import (
    InMemoryRateLimitBackend,
    MutationRateLimiter,
    RateLimitBackend,
    RateLimitBackendError,
    RateLimitDecision,
    RedisRateLimitBackend,
)
from campusiq.domains.mutation.service import (
    RATE_LIMIT_CLASSES,
    MutationBoundary,
    Operations,
)

__all__ = [
    # Errors
    "ErrorKind",
    "FailedPreconditionError",
    "InvalidArgumentError",
    "MutationError",
    "MutationTimeoutError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitedError",
    "StorageUnavailableError",
    "VersionConflictError",
    # Boundary
    "MutationBoundary",
    "Operations",
    "RATE_LIMIT_CLASSES",
    # Rate limiting
    "InMemoryRateLimitBackend",
    "MutationRateLimiter",
    "RateLimitBackend",
    "RateLimitBackendError",
    "RateLimitDecision",
    "RedisRateLimitBackend",
    # Client messages
    "ClientMutationWrapper",
    "MutationOutcome",
    "roles_holding",
    "user_message",
]
