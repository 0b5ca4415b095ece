# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Audit trail and security event models.

Audit details are a discriminated union keyed by ``kind``: each audited
action has exactly one permissible detail shape, which keeps stored
entries queryable.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from campusiq.models.common import EntityType, Role

DetailValue = str | int | float | bool | list[str] | None


class AuditAction(str, Enum):
    """Audited action tags."""

    TASK_CREATED = "task:created"
    TASK_STATUS_CHANGED = "task:status_changed"
    TASK_PRIORITY_CHANGED = "task:priority_changed"
    TASK_COMMENT_ADDED = "task:comment_added"
    TASK_ASSIGNED = "task:assigned"
    TASK_DELETED = "task:deleted"
    EXAM_CREATED = "exam:created"
    EXAM_UPDATED = "exam:updated"
    EXAM_DELETED = "exam:deleted"
    EXAM_RESULTS_PUBLISHED = "exam:results_published"


ACTION_DISPLAY_NAMES: dict[AuditAction, str] = {
    AuditAction.TASK_CREATED: "Task Created",
    AuditAction.TASK_STATUS_CHANGED: "Status Changed",
    AuditAction.TASK_PRIORITY_CHANGED: "Priority Changed",
    AuditAction.TASK_COMMENT_ADDED: "Comment Added",
    AuditAction.TASK_ASSIGNED: "Task Assigned",
    AuditAction.TASK_DELETED: "Task Deleted",
    AuditAction.EXAM_CREATED: "Exam Created",
    AuditAction.EXAM_UPDATED: "Exam Updated",
    AuditAction.EXAM_DELETED: "Exam Deleted",
    AuditAction.EXAM_RESULTS_PUBLISHED: "Exam Results Published",
}


class PerformedBy(BaseModel):
    """Snapshot of the acting user at the time of the action."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: Role | None = None


class TaskCreatedDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["task_created"] = "task_created"
    title: str
    category: str
    priority: str


class CommentAddedDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["comment_added"] = "comment_added"
    comment_id: str
    comment_preview: str


class ExamCreatedDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exam_created"] = "exam_created"
    title: str
    course_code: str
    exam_type: str
    conflict_count: int = 0


class ExamUpdatedDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exam_updated"] = "exam_updated"
    changes: dict[str, DetailValue] = Field(default_factory=dict)
    conflict_count: int = 0


class ExamDeletedDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exam_deleted"] = "exam_deleted"
    title: str
    course_code: str


class ResultsPublishedDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["results_published"] = "results_published"
    result_count: int


AuditDetails = Annotated[
    Union[
        TaskCreatedDetails,
        CommentAddedDetails,
        ExamCreatedDetails,
        ExamUpdatedDetails,
        ExamDeletedDetails,
        ResultsPublishedDetails,
    ],
    Field(discriminator="kind"),
]


class AuditLogEntryDraft(BaseModel):
    """An audit entry before the recorder assigns id and timestamp."""

    model_config = ConfigDict(frozen=True)

    action: AuditAction
    performed_by: PerformedBy
    entity_type: EntityType
    entity_id: str
    previous_value: str | None = None
    new_value: str | None = None
    details: AuditDetails | None = None


class AuditLogEntry(AuditLogEntryDraft):
    """An immutable, stored audit entry."""

    id: str
    timestamp: datetime

    @property
    def display_name(self) -> str:
        """Human-readable action label."""
        return ACTION_DISPLAY_NAMES.get(self.action, self.action.value)


class SecuritySeverity(str, Enum):
    """Severity of a security event."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class SecurityEvent(BaseModel):
    """An intrusion signal raised by the mutation boundary.

    Attributes:
        user_id: Acting user.
        role: Administrative role at the time, if any.
        account: Account kind at the time.
        action: Signal tag such as "exam:create:permission_denied".
        reason: Human-readable explanation.
        severity: Event severity.
        metadata: Additional structured context.
        timestamp: When the event was raised.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role | None = None
    account: str | None = None
    action: str
    reason: str
    severity: SecuritySeverity
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
