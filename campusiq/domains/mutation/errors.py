# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Errors surfaced by the mutation boundary.

Each error carries an ErrorKind so transports can map failures without
inspecting the exception class, plus the structured detail callers need
to build a message (missing permission, retry delay, offending field).
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories returned to callers."""

    PERMISSION_DENIED = "PERMISSION_DENIED"
    RATE_LIMITED = "RATE_LIMITED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    NOT_FOUND = "NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    CONFLICT = "CONFLICT"


class MutationError(Exception):
    """Base exception for boundary operations.

    Attributes:
        message: Human-readable description.
        kind: Failure category.
        operation: Boundary operation that failed, when known.
        original_error: Underlying exception, if any.
    """

    kind: ErrorKind = ErrorKind.FAILED_PRECONDITION

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.operation = operation
        self.original_error = original_error
        super().__init__(self.message)


class PermissionDeniedError(MutationError):
    """Caller's role lacks the permission the action requires."""

    kind = ErrorKind.PERMISSION_DENIED

    def __init__(
        self,
        permission: str,
        role: str | None = None,
        operation: str | None = None,
        reason: str | None = None,
    ):
        super().__init__(
            message=reason or f"Permission denied: {permission}",
            operation=operation,
        )
        self.permission = permission
        self.role = role


class RateLimitedError(MutationError):
    """Caller exceeded the limit for an action class."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        action_class: str,
        retry_after: int | None,
        burst: bool = False,
        operation: str | None = None,
    ):
        window = "burst window" if burst else "rate window"
        super().__init__(
            message=f"Rate limit exceeded for {action_class} ({window})",
            operation=operation,
        )
        self.action_class = action_class
        self.retry_after = retry_after
        self.burst = burst


class InvalidArgumentError(MutationError):
    """A request field is missing, malformed or out of range."""

    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, field: str, message: str, operation: str | None = None):
        super().__init__(message=message, operation=operation)
        self.field = field


class FailedPreconditionError(MutationError):
    """The entity's current status forbids the requested change.

    Attributes:
        current: Current status value.
        requested: Requested status value, for transitions.
        requirement: Status the operation needs, for status gates.
    """

    kind = ErrorKind.FAILED_PRECONDITION

    def __init__(
        self,
        message: str,
        current: str | None = None,
        requested: str | None = None,
        requirement: str | None = None,
        operation: str | None = None,
    ):
        super().__init__(message=message, operation=operation)
        self.current = current
        self.requested = requested
        self.requirement = requirement


class NotFoundError(MutationError):
    """The addressed entity does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, entity_id: str, operation: str | None = None):
        super().__init__(message=f"{entity} not found: {entity_id}", operation=operation)
        self.entity = entity
        self.entity_id = entity_id


class MutationTimeoutError(MutationError):
    """The call exceeded its deadline. The write may or may not have happened."""

    kind = ErrorKind.TIMEOUT

    def __init__(self, timeout: float, operation: str | None = None):
        super().__init__(
            message=f"Operation timed out after {timeout:g}s",
            operation=operation,
        )
        self.timeout = timeout


class StorageUnavailableError(MutationError):
    """A backing store (documents or rate-limit counters) is unreachable."""

    kind = ErrorKind.STORAGE_UNAVAILABLE


class VersionConflictError(MutationError):
    """The caller's expected version is stale."""

    kind = ErrorKind.CONFLICT

    def __init__(
        self,
        entity: str,
        entity_id: str,
        expected: int,
        actual: int,
        operation: str | None = None,
    ):
        super().__init__(
            message=f"{entity} {entity_id} is at version {actual}, expected {expected}",
            operation=operation,
        )
        self.entity = entity
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
