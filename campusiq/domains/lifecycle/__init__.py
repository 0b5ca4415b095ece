# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle state machines for tasks and exams."""

from campusiq.domains.lifecycle.base import InvalidTransitionError, StateMachine
from campusiq.domains.lifecycle.exam import (
    ACTIVE_STATUSES,
    EXAM_LIFECYCLE,
    can_delete,
    can_publish_results,
)
from campusiq.domains.lifecycle.task import (
    TASK_LIFECYCLE,
    required_permission,
    transition_fields,
)

__all__ = [
    "ACTIVE_STATUSES",
    "EXAM_LIFECYCLE",
    "InvalidTransitionError",
    "StateMachine",
    "TASK_LIFECYCLE",
    "can_delete",
    "can_publish_results",
    "required_permission",
    "transition_fields",
]
