# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Task API endpoints.

This module provides endpoints for administrative tasks:
- POST / - Create a task
- GET / - List tasks in the caller's scope
- GET /{task_id} - Get task details
- POST /{task_id}/status - Change task status
- POST /{task_id}/comments - Add a comment
- POST /{task_id}/summary - Attach an externally generated summary

Every write goes through the mutation boundary; boundary errors are
rendered by the application's MutationError handler.

Example:
    POST /api/v1/tasks
    {
        "title": "Broken projector in B-204",
        "description": "Projector does not power on",
        "priority": "HIGH"
    }
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from campusiq.api.dependencies import get_boundary, get_optional_actor
from campusiq.domains.access import Permission
from campusiq.domains.mutation import (
    InvalidArgumentError,
    MutationBoundary,
    PermissionDeniedError,
)
from campusiq.models.common import Actor
from campusiq.models.task import (
    AddTaskCommentRequest,
    AttachSummaryRequest,
    CreateTaskRequest,
    Task,
    TaskComment,
    UpdateTaskStatusRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=Task,
    status_code=status.HTTP_201_CREATED,
    summary="Create task",
)
async def create_task(
    data: CreateTaskRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Task:
    return await boundary.create_task(actor, data)


@router.get(
    "",
    response_model=list[Task],
    summary="List tasks",
    description="Administrators see all tasks; other accounts see their own.",
)
async def list_tasks(
    limit: int | None = Query(default=None, ge=1, le=500),
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> list[Task]:
    return await boundary.list_tasks(actor, limit=limit)


@router.get("/{task_id}", response_model=Task, summary="Get task")
async def get_task(
    task_id: str,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Task:
    return await boundary.get_task(actor, task_id)


@router.post("/{task_id}/status", response_model=Task, summary="Change task status")
async def update_task_status(
    task_id: str,
    data: UpdateTaskStatusRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Task:
    """Move a task along its lifecycle.

    Returns 409 when the move is not a valid transition or the supplied
    ``expected_version`` is stale.
    """
    return await boundary.update_task_status(actor, task_id, data)


@router.post(
    "/{task_id}/comments",
    response_model=TaskComment,
    status_code=status.HTTP_201_CREATED,
    summary="Add comment",
)
async def add_task_comment(
    task_id: str,
    data: AddTaskCommentRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> TaskComment:
    return await boundary.add_task_comment(actor, task_id, data)


@router.post("/{task_id}/summary", response_model=Task, summary="Attach AI summary")
async def attach_task_summary(
    task_id: str,
    data: AttachSummaryRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Task:
    """Store a summary produced outside the service.

    Every created task dispatches an ``ai_summary.requested`` job on the
    dispatcher's event bus. The summarizer consumes those jobs and posts
    its text here with an administrator token. The summary is derived
    data: it is neither rate limited nor audited.
    """
    task = await boundary.get_task(actor, task_id)
    if actor is None or not actor.is_admin:
        raise PermissionDeniedError(
            Permission.TASK_VIEW.value,
            reason="Only administrators may attach summaries",
        )
    if not await boundary.attach_ai_summary(task.id, data.summary or ""):
        raise InvalidArgumentError("summary", "Summary is empty or could not be stored")
    logger.info("AI summary attached to task %s by %s", task.id, actor.id)
    return await boundary.get_task(actor, task_id)
