# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Client-side translation of boundary errors into user messages.

The same action is legitimately available to some roles and not others,
so permission and precondition messages say which role the caller has
and what would be needed instead of a generic failure.

Example:
    wrapper = ClientMutationWrapper(boundary)
    outcome = await wrapper.call("create_task", actor, request)
    if not outcome.ok:
        show(outcome.message)
"""

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from campusiq.domains.access import Permission, allows, role_display_name
from campusiq.domains.mutation.errors import (
    ErrorKind,
    FailedPreconditionError,
    InvalidArgumentError,
    MutationError,
    PermissionDeniedError,
    RateLimitedError,
)
from campusiq.domains.mutation.service import MutationBoundary
from campusiq.models.common import Actor, Role
from campusiq.utils.datetime import seconds_to_human

logger = logging.getLogger(__name__)

T = TypeVar("T")

# What the caller was trying to do, keyed by boundary operation name.
ACTION_PHRASES: dict[str, str] = {
    "task:create": "create tasks",
    "task:status_change": "change task status",
    "task:comment": "add comments",
    "exam:create": "create exams",
    "exam:update": "update exams",
    "exam:delete": "delete exams",
    "exam:publish": "publish exam results",
}

# What to hold back on when rate limited, keyed by action class.
RATE_LIMIT_PHRASES: dict[str, str] = {
    "task:create": "creating more items",
    "task:comment": "adding more comments",
}

WRAPPED_OPERATIONS = frozenset(
    {
        "create_task",
        "update_task_status",
        "add_task_comment",
        "create_exam",
        "update_exam",
        "delete_exam",
        "publish_exam_results",
    }
)


def roles_holding(permission: Permission | str) -> list[Role]:
    """Roles whose permission set includes ``permission``."""
    return [role for role in Role if allows(role, permission)]


def _join(names: list[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " or " + names[-1]


def _permission_message(error: PermissionDeniedError, actor: Actor | None) -> str:
    action = ACTION_PHRASES.get(error.operation or "", "perform this action")
    if actor is None:
        return f"Please sign in to {action}."
    if not actor.is_admin:
        return f"Only administrators can {action}."

    role = role_display_name(actor.role)
    holders = [role_display_name(r) for r in roles_holding(error.permission) if r != actor.role]
    message = f"Your role ({role}) does not allow you to {action}."
    if holders:
        message += f" This action is available to: {_join(holders)}."
    return message


def _precondition_message(error: FailedPreconditionError) -> str:
    if error.requested:
        return (
            f"Cannot change status from {error.current} to {error.requested}. "
            f"This transition is not allowed."
        )
    if error.requirement:
        action = ACTION_PHRASES.get(error.operation or "", "do this")
        return (
            f"Cannot {action} while the status is {error.current}. "
            f"The status must be {error.requirement}."
        )
    return error.message


def _rate_limit_message(error: RateLimitedError) -> str:
    pause = RATE_LIMIT_PHRASES.get(error.action_class, "making more changes")
    if error.retry_after:
        return (
            f"Rate limit exceeded. Please wait {seconds_to_human(error.retry_after)} "
            f"before {pause}."
        )
    return f"Rate limit exceeded. Please wait before {pause}."


def user_message(error: MutationError, actor: Actor | None = None) -> str:
    """Build the message shown to ``actor`` for a failed boundary call."""
    if isinstance(error, PermissionDeniedError):
        return _permission_message(error, actor)
    if isinstance(error, RateLimitedError):
        return _rate_limit_message(error)
    if isinstance(error, FailedPreconditionError):
        return _precondition_message(error)
    if isinstance(error, InvalidArgumentError):
        return error.message or "Invalid input provided."
    if error.kind == ErrorKind.NOT_FOUND:
        return f"{error.message}. It may have been deleted."
    if error.kind == ErrorKind.CONFLICT:
        return "This item was changed by someone else. Reload it and try again."
    if error.kind == ErrorKind.TIMEOUT:
        return (
            "The request took too long. The change may have been applied; "
            "check before trying again."
        )
    if error.kind == ErrorKind.STORAGE_UNAVAILABLE:
        return "The service is temporarily unavailable. Please try again later."
    return error.message


@dataclass(frozen=True)
class MutationOutcome(Generic[T]):
    """Result of a wrapped boundary call.

    Attributes:
        ok: Whether the call succeeded.
        value: Boundary return value on success.
        kind: Error kind on failure.
        message: User-facing message on failure.
        retry_after: Seconds to wait, for rate-limited calls.
    """

    ok: bool
    value: T | None = None
    kind: ErrorKind | None = None
    message: str | None = None
    retry_after: int | None = None


class ClientMutationWrapper:
    """Calls boundary operations and returns outcomes instead of raising."""

    def __init__(self, boundary: MutationBoundary):
        self._boundary = boundary

    async def call(
        self,
        operation: str,
        actor: Actor | None,
        *args: Any,
        **kwargs: Any,
    ) -> MutationOutcome:
        """Invoke ``operation`` on the boundary for ``actor``.

        Raises:
            ValueError: If ``operation`` is not a boundary mutation.
        """
        if operation not in WRAPPED_OPERATIONS:
            raise ValueError(f"Unknown mutation operation: {operation}")

        method = getattr(self._boundary, operation)
        try:
            value = await method(actor, *args, **kwargs)
        except MutationError as e:
            logger.info("Mutation %s failed: %s (%s)", operation, e.kind.value, e.message)
            return MutationOutcome(
                ok=False,
                kind=e.kind,
                message=user_message(e, actor),
                retry_after=e.retry_after if isinstance(e, RateLimitedError) else None,
            )
        return MutationOutcome(ok=True, value=value)
