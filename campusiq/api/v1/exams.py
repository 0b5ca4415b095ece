# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam API endpoints.

This module provides endpoints for exam scheduling:
- POST / - Create an exam (conflict warnings attached)
- GET / - List exams in the caller's scope
- GET /{exam_id} - Get exam details
- PATCH /{exam_id} - Update exam fields or status
- DELETE /{exam_id} - Delete a draft exam
- POST /{exam_id}/results - Publish results of a completed exam

Scheduling conflicts never block a write; they come back in
``conflict_warnings`` and the client decides what to do with them.
"""

import logging

from fastapi import APIRouter, Depends, Query, Response, status

from campusiq.api.dependencies import get_boundary, get_optional_actor
from campusiq.domains.mutation import MutationBoundary
from campusiq.models.common import Actor
from campusiq.models.exam import (
    CreateExamRequest,
    Exam,
    PublishExamResultsRequest,
    UpdateExamRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=Exam,
    status_code=status.HTTP_201_CREATED,
    summary="Create exam",
)
async def create_exam(
    data: CreateExamRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Exam:
    exam = await boundary.create_exam(actor, data)
    if exam.conflict_warnings:
        logger.info(
            "Exam %s created with %d conflict warning(s)",
            exam.id,
            len(exam.conflict_warnings),
        )
    return exam


@router.get("", response_model=list[Exam], summary="List exams")
async def list_exams(
    limit: int | None = Query(default=None, ge=1, le=500),
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> list[Exam]:
    return await boundary.list_exams(actor, limit=limit)


@router.get("/{exam_id}", response_model=Exam, summary="Get exam")
async def get_exam(
    exam_id: str,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Exam:
    return await boundary.get_exam(actor, exam_id)


@router.patch("/{exam_id}", response_model=Exam, summary="Update exam")
async def update_exam(
    exam_id: str,
    data: UpdateExamRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Exam:
    return await boundary.update_exam(actor, exam_id, data)


@router.delete(
    "/{exam_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete draft exam",
)
async def delete_exam(
    exam_id: str,
    expected_version: int | None = Query(default=None, ge=1),
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Response:
    await boundary.delete_exam(actor, exam_id, expected_version=expected_version)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{exam_id}/results", response_model=Exam, summary="Publish exam results")
async def publish_exam_results(
    exam_id: str,
    data: PublishExamResultsRequest,
    actor: Actor | None = Depends(get_optional_actor),
    boundary: MutationBoundary = Depends(get_boundary),
) -> Exam:
    return await boundary.publish_exam_results(actor, exam_id, data)
