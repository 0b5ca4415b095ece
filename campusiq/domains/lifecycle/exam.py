# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam lifecycle and status preconditions."""

from campusiq.domains.lifecycle.base import StateMachine
from campusiq.models.exam import ExamStatus

EXAM_LIFECYCLE: StateMachine[ExamStatus] = StateMachine(
    "exam",
    {
        ExamStatus.DRAFT: [ExamStatus.SCHEDULED, ExamStatus.CANCELLED],
        ExamStatus.SCHEDULED: [ExamStatus.IN_PROGRESS, ExamStatus.CANCELLED],
        ExamStatus.IN_PROGRESS: [ExamStatus.COMPLETED],
        ExamStatus.COMPLETED: [],
        ExamStatus.CANCELLED: [],
    },
)

# Only exams in these states take part in conflict scans.
ACTIVE_STATUSES: frozenset[ExamStatus] = frozenset(
    {ExamStatus.DRAFT, ExamStatus.SCHEDULED, ExamStatus.IN_PROGRESS}
)


def can_transition(current: ExamStatus, requested: ExamStatus) -> bool:
    """Check whether an exam status move is a listed edge."""
    return EXAM_LIFECYCLE.can_transition(current, requested)


def can_delete(status: ExamStatus) -> bool:
    """Exams can be deleted only while still in draft."""
    return status == ExamStatus.DRAFT


def can_publish_results(status: ExamStatus) -> bool:
    """Results can be published only for completed exams."""
    return status == ExamStatus.COMPLETED
