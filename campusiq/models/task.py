# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Task models.

Request models are deliberately permissive: field presence, lengths and
enum membership are checked by the mutation boundary after the permission
and rate-limit gates, so a malformed request from an unauthorized caller
is still reported as a permission failure.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from campusiq.models.common import Role


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    ESCALATED = "ESCALATED"


class TaskPriority(str, Enum):
    """Task priority levels."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class GeoPoint(BaseModel):
    """Latitude/longitude pair attached to a reported task."""

    lat: float
    lng: float


class TaskComment(BaseModel):
    """A comment on a task. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    author_id: str
    author_name: str
    author_role: Role | None = None
    created_at: datetime


class Task(BaseModel):
    """Administrative task tracked through its lifecycle.

    Attributes:
        id: Document id.
        title: Short title.
        description: Full description.
        category: Category label (AI-suggested or "General").
        priority: Priority level.
        status: Current lifecycle state.
        created_by: Creator user id (owner for read scoping).
        created_by_name: Creator display name.
        assigned_to: Optional assignee user id.
        comments: Append-only comment list.
        created_at: Creation timestamp.
        resolved_at: Set when the task first enters RESOLVED.
        ai_summary: Externally produced summary text.
        location: Optional reported location.
        version: Store document version.
    """

    id: str
    title: str
    description: str
    category: str = "General"
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.NEW
    created_by: str
    created_by_name: str = ""
    assigned_to: str | None = None
    comments: list[TaskComment] = Field(default_factory=list)
    created_at: datetime
    resolved_at: datetime | None = None
    ai_summary: str | None = None
    location: GeoPoint | None = None
    version: int = 1


class CreateTaskRequest(BaseModel):
    """Request to create a task."""

    title: str | None = None
    description: str | None = None
    category: str | None = None
    priority: str | None = None
    location: dict[str, Any] | None = None
    idempotency_key: str | None = None


class UpdateTaskStatusRequest(BaseModel):
    """Request to move a task to a new status."""

    new_status: str | None = None
    expected_version: int | None = None


class AddTaskCommentRequest(BaseModel):
    """Request to append a comment to a task."""

    text: str | None = None


class AttachSummaryRequest(BaseModel):
    """Summary text produced by the external summarizer."""

    summary: str | None = None
