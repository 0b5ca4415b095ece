# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic models for CampusIQ entities and requests."""

from campusiq.models.audit import (
    AuditAction,
    AuditDetails,
    AuditLogEntry,
    AuditLogEntryDraft,
    CommentAddedDetails,
    ExamCreatedDetails,
    ExamDeletedDetails,
    ExamUpdatedDetails,
    PerformedBy,
    ResultsPublishedDetails,
    SecurityEvent,
    SecuritySeverity,
    TaskCreatedDetails,
)
from campusiq.models.common import AccountKind, Actor, EntityType, Role
from campusiq.models.exam import (
    ConflictRecord,
    ConflictSeverity,
    ConflictType,
    CreateExamRequest,
    Exam,
    ExamAttendance,
    ExamResult,
    ExamScheduleFields,
    ExamStatus,
    ExamType,
    PublishExamResultsRequest,
    UpdateExamRequest,
)
from campusiq.models.task import (
    AddTaskCommentRequest,
    AttachSummaryRequest,
    CreateTaskRequest,
    GeoPoint,
    Task,
    TaskComment,
    TaskPriority,
    TaskStatus,
    UpdateTaskStatusRequest,
)

__all__ = [
    # Common
    "AccountKind",
    "Actor",
    "EntityType",
    "Role",
    # Tasks
    "AddTaskCommentRequest",
    "AttachSummaryRequest",
    "CreateTaskRequest",
    "GeoPoint",
    "Task",
    "TaskComment",
    "TaskPriority",
    "TaskStatus",
    "UpdateTaskStatusRequest",
    # Exams
    "ConflictRecord",
    "ConflictSeverity",
    "ConflictType",
    "CreateExamRequest",
    "Exam",
    "ExamAttendance",
    "ExamResult",
    "ExamScheduleFields",
    "ExamStatus",
    "ExamType",
    "PublishExamResultsRequest",
    "UpdateExamRequest",
    # Audit
    "AuditAction",
    "AuditDetails",
    "AuditLogEntry",
    "AuditLogEntryDraft",
    "CommentAddedDetails",
    "ExamCreatedDetails",
    "ExamDeletedDetails",
    "ExamUpdatedDetails",
    "PerformedBy",
    "ResultsPublishedDetails",
    "SecurityEvent",
    "SecuritySeverity",
    "TaskCreatedDetails",
]
