# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Task lifecycle.

NEW -> IN_PROGRESS -> RESOLVED, NEW/IN_PROGRESS -> ESCALATED and
ESCALATED -> RESOLVED. RESOLVED has no listed edge, but moves out of it
are accepted by the write path: no business rule has been settled for
reopening a resolved task.
"""

from datetime import datetime

from campusiq.domains.access import Permission
from campusiq.domains.lifecycle.base import StateMachine
from campusiq.models.task import TaskStatus

TASK_LIFECYCLE: StateMachine[TaskStatus] = StateMachine(
    "task",
    {
        TaskStatus.NEW: [TaskStatus.IN_PROGRESS, TaskStatus.ESCALATED],
        TaskStatus.IN_PROGRESS: [TaskStatus.RESOLVED, TaskStatus.ESCALATED],
        TaskStatus.ESCALATED: [TaskStatus.RESOLVED],
        TaskStatus.RESOLVED: [],
    },
    unguarded=[TaskStatus.RESOLVED],
)


def can_transition(current: TaskStatus, requested: TaskStatus) -> bool:
    """Check whether a task status move is a listed edge."""
    return TASK_LIFECYCLE.can_transition(current, requested)


def required_permission(requested: TaskStatus) -> Permission:
    """Permission needed to move a task into ``requested``."""
    if requested == TaskStatus.ESCALATED:
        return Permission.TASK_ESCALATE
    return Permission.TASK_CLOSE


def transition_fields(
    requested: TaskStatus,
    now: datetime,
) -> dict[str, object]:
    """Field changes written alongside a status move.

    Entering RESOLVED stamps ``resolved_at``. Leaving RESOLVED keeps it.
    """
    fields: dict[str, object] = {"status": requested.value}
    if requested == TaskStatus.RESOLVED:
        fields["resolved_at"] = now
    return fields
