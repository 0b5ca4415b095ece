# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for task and exam lifecycle state machines."""

import itertools
from datetime import datetime, timezone

import pytest

from campusiq.domains.access import Permission
from campusiq.domains.lifecycle import (
    EXAM_LIFECYCLE,
    TASK_LIFECYCLE,
    InvalidTransitionError,
    StateMachine,
    can_delete,
    can_publish_results,
    required_permission,
    transition_fields,
)
from campusiq.domains.lifecycle import exam as exam_lifecycle
from campusiq.domains.lifecycle import task as task_lifecycle
from campusiq.models.exam import ExamStatus
from campusiq.models.task import TaskStatus

TASK_EDGES = {
    (TaskStatus.NEW, TaskStatus.IN_PROGRESS),
    (TaskStatus.NEW, TaskStatus.ESCALATED),
    (TaskStatus.IN_PROGRESS, TaskStatus.RESOLVED),
    (TaskStatus.IN_PROGRESS, TaskStatus.ESCALATED),
    (TaskStatus.ESCALATED, TaskStatus.RESOLVED),
}

EXAM_EDGES = {
    (ExamStatus.DRAFT, ExamStatus.SCHEDULED),
    (ExamStatus.SCHEDULED, ExamStatus.IN_PROGRESS),
    (ExamStatus.IN_PROGRESS, ExamStatus.COMPLETED),
    (ExamStatus.DRAFT, ExamStatus.CANCELLED),
    (ExamStatus.SCHEDULED, ExamStatus.CANCELLED),
}


class TestTaskLifecycle:
    """Tests for the task state machine."""

    def test_listed_edges_exactly(self) -> None:
        for current, requested in itertools.product(TaskStatus, TaskStatus):
            expected = (current, requested) in TASK_EDGES
            assert task_lifecycle.can_transition(current, requested) == expected

    def test_never_reflexive(self) -> None:
        for status in TaskStatus:
            assert not TASK_LIFECYCLE.can_transition(status, status)
            assert not TASK_LIFECYCLE.permits(status, status)

    def test_edges_match_table(self) -> None:
        assert TASK_LIFECYCLE.edges() == TASK_EDGES

    def test_resolved_offers_nothing(self) -> None:
        assert TASK_LIFECYCLE.next_states(TaskStatus.RESOLVED) == frozenset()
        assert TASK_LIFECYCLE.is_terminal(TaskStatus.RESOLVED)

    def test_moves_out_of_resolved_are_not_blocked(self) -> None:
        """Reopening a resolved task is accepted by the write path."""
        assert not TASK_LIFECYCLE.can_transition(TaskStatus.RESOLVED, TaskStatus.IN_PROGRESS)
        assert TASK_LIFECYCLE.permits(TaskStatus.RESOLVED, TaskStatus.IN_PROGRESS)
        assert TASK_LIFECYCLE.permits(TaskStatus.RESOLVED, TaskStatus.NEW)

    def test_escalated_cannot_go_back_to_new(self) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            TASK_LIFECYCLE.ensure(TaskStatus.ESCALATED, TaskStatus.NEW)

        assert exc_info.value.current == TaskStatus.ESCALATED
        assert exc_info.value.requested == TaskStatus.NEW

    def test_required_permission(self) -> None:
        assert required_permission(TaskStatus.ESCALATED) == Permission.TASK_ESCALATE
        assert required_permission(TaskStatus.RESOLVED) == Permission.TASK_CLOSE
        assert required_permission(TaskStatus.IN_PROGRESS) == Permission.TASK_CLOSE

    def test_entering_resolved_stamps_resolved_at(self) -> None:
        now = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

        assert transition_fields(TaskStatus.RESOLVED, now) == {
            "status": "RESOLVED",
            "resolved_at": now,
        }
        assert transition_fields(TaskStatus.IN_PROGRESS, now) == {"status": "IN_PROGRESS"}


class TestExamLifecycle:
    """Tests for the exam state machine."""

    def test_listed_edges_exactly(self) -> None:
        for current, requested in itertools.product(ExamStatus, ExamStatus):
            expected = (current, requested) in EXAM_EDGES
            assert exam_lifecycle.can_transition(current, requested) == expected
            assert EXAM_LIFECYCLE.permits(current, requested) == expected

    def test_terminal_states(self) -> None:
        assert EXAM_LIFECYCLE.is_terminal(ExamStatus.COMPLETED)
        assert EXAM_LIFECYCLE.is_terminal(ExamStatus.CANCELLED)
        assert not EXAM_LIFECYCLE.is_terminal(ExamStatus.DRAFT)

    @pytest.mark.parametrize("status", list(ExamStatus))
    def test_delete_only_while_draft(self, status: ExamStatus) -> None:
        assert can_delete(status) == (status == ExamStatus.DRAFT)

    @pytest.mark.parametrize("status", list(ExamStatus))
    def test_publish_only_when_completed(self, status: ExamStatus) -> None:
        assert can_publish_results(status) == (status == ExamStatus.COMPLETED)


class TestStateMachine:
    """Tests for the generic state machine."""

    def test_listed_self_loop_is_dropped(self) -> None:
        machine = StateMachine("demo", {TaskStatus.NEW: [TaskStatus.NEW, TaskStatus.RESOLVED]})

        assert not machine.can_transition(TaskStatus.NEW, TaskStatus.NEW)
        assert machine.next_states(TaskStatus.NEW) == frozenset({TaskStatus.RESOLVED})

    def test_unknown_source_has_no_edges(self) -> None:
        machine = StateMachine("demo", {})
        assert not machine.can_transition(TaskStatus.NEW, TaskStatus.RESOLVED)
        assert machine.is_terminal(TaskStatus.NEW)
