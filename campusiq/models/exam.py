# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam and scheduling conflict models."""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExamStatus(str, Enum):
    """Exam lifecycle states."""

    DRAFT = "DRAFT"
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ExamType(str, Enum):
    """Kinds of assessment."""

    MIDTERM = "MIDTERM"
    FINAL = "FINAL"
    QUIZ = "QUIZ"
    ASSIGNMENT = "ASSIGNMENT"
    PROJECT = "PROJECT"


class ConflictType(str, Enum):
    """Scheduling conflict categories.

    TIME is part of the vocabulary but never emitted on its own; overlaps
    are reported through ROOM or STUDENT. CAPACITY flags enrollment above
    the room capacity.
    """

    ROOM = "ROOM"
    TIME = "TIME"
    STUDENT = "STUDENT"
    CAPACITY = "CAPACITY"


class ConflictSeverity(str, Enum):
    """How serious a conflict is."""

    WARNING = "WARNING"
    ERROR = "ERROR"


class ConflictRecord(BaseModel):
    """A derived report of one scheduling clash."""

    model_config = ConfigDict(frozen=True)

    type: ConflictType
    severity: ConflictSeverity
    conflicting_exam_id: str | None = None
    conflicting_exam_title: str | None = None
    message: str


class ExamScheduleFields(BaseModel):
    """The schedule-relevant subset of an exam, used as detector input.

    Attributes:
        exam_id: Id of the exam being (re)scheduled, skipped in the scan.
        scheduled_date: Calendar date of the sitting.
        start_time: "HH:mm" start.
        end_time: "HH:mm" end, exclusive.
        room: Room name, when assigned.
        enrolled_students: Student ids sitting the exam.
        capacity: Room capacity, when known.
    """

    exam_id: str | None = None
    scheduled_date: date
    start_time: str
    end_time: str
    room: str | None = None
    enrolled_students: list[str] = Field(default_factory=list)
    capacity: int | None = None


class Exam(BaseModel):
    """A scheduled assessment.

    Attributes:
        id: Document id.
        title: Exam title.
        course_code: Course code.
        course_name: Course name.
        exam_type: Kind of assessment.
        status: Current lifecycle state.
        scheduled_date: Calendar date of the sitting.
        start_time: "HH:mm" start.
        end_time: "HH:mm" end.
        duration: Duration in minutes.
        room: Room name.
        building: Building name.
        capacity: Seat capacity.
        enrolled_students: Enrolled student ids.
        student_count: len(enrolled_students).
        instructions: Free-form instructions.
        created_by: Creator user id.
        created_by_name: Creator display name.
        conflict_warnings: Conflicts found at the last schedule change.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
        published_at: Results publication timestamp.
        version: Store document version.
    """

    id: str
    title: str
    course_code: str
    course_name: str
    exam_type: ExamType
    status: ExamStatus = ExamStatus.DRAFT
    scheduled_date: date
    start_time: str
    end_time: str
    duration: int
    room: str | None = None
    building: str | None = None
    capacity: int
    enrolled_students: list[str] = Field(default_factory=list)
    student_count: int = 0
    instructions: str | None = None
    created_by: str
    created_by_name: str = ""
    conflict_warnings: list[ConflictRecord] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    published_at: datetime | None = None
    version: int = 1

    def schedule_fields(self) -> ExamScheduleFields:
        """Project this exam onto the detector input shape."""
        return ExamScheduleFields(
            exam_id=self.id,
            scheduled_date=self.scheduled_date,
            start_time=self.start_time,
            end_time=self.end_time,
            room=self.room,
            enrolled_students=list(self.enrolled_students),
            capacity=self.capacity,
        )


class ExamAttendance(str, Enum):
    """Attendance mark on a result row."""

    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"


class ExamResult(BaseModel):
    """One student's result for an exam."""

    student_id: str
    student_name: str = ""
    seat_number: int | None = None
    attendance: ExamAttendance | None = None
    score: float | None = None
    grade: str | None = None


class CreateExamRequest(BaseModel):
    """Request to create an exam."""

    title: str | None = None
    course_code: str | None = None
    course_name: str | None = None
    exam_type: str | None = None
    scheduled_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration: int | None = None
    room: str | None = None
    building: str | None = None
    capacity: int | None = None
    instructions: str | None = None
    enrolled_students: list[str] | None = None
    idempotency_key: str | None = None


class UpdateExamRequest(BaseModel):
    """Partial exam update. Only fields explicitly set are applied."""

    title: str | None = None
    course_code: str | None = None
    course_name: str | None = None
    exam_type: str | None = None
    scheduled_date: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration: int | None = None
    room: str | None = None
    building: str | None = None
    capacity: int | None = None
    instructions: str | None = None
    enrolled_students: list[str] | None = None
    status: str | None = None
    expected_version: int | None = None

    def provided(self) -> dict[str, Any]:
        """Return the explicitly supplied update fields."""
        fields = self.model_fields_set - {"expected_version"}
        return {name: getattr(self, name) for name in sorted(fields)}


class PublishExamResultsRequest(BaseModel):
    """Request to publish the results of a completed exam."""

    results: list[dict[str, Any]] | None = None
