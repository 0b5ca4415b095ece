# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Input validation for boundary requests.

Validators take the permissive request models, normalize them (trim
strings, apply defaults, coerce enums) and raise InvalidArgumentError
naming the first offending field.
"""

from datetime import date
from enum import Enum
from typing import Any, TypeVar

from pydantic import ValidationError

from campusiq.core.config import MutationSettings
from campusiq.domains.mutation.errors import InvalidArgumentError
from campusiq.models.exam import (
    CreateExamRequest,
    Exam,
    ExamResult,
    ExamStatus,
    ExamType,
    PublishExamResultsRequest,
    UpdateExamRequest,
)
from campusiq.models.task import CreateTaskRequest, GeoPoint, TaskPriority, TaskStatus
from campusiq.utils.datetime import clock_to_minutes, is_clock_time, parse_calendar_date

E = TypeVar("E", bound=Enum)

DEFAULT_CATEGORY = "General"

# Fields whose change requires a fresh conflict scan.
SCHEDULE_FIELDS = frozenset(
    {"scheduled_date", "start_time", "end_time", "room", "enrolled_students", "capacity"}
)


def _required_text(field: str, value: str | None, max_length: int | None = None) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgumentError(field, f"{field} is required")
    if max_length is not None and len(text) > max_length:
        raise InvalidArgumentError(
            field, f"{field} too long (max {max_length} characters)"
        )
    return text


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def _enum_value(field: str, enum_type: type[E], value: str | None) -> E:
    try:
        return enum_type((value or "").strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise InvalidArgumentError(field, f"{field} must be one of: {allowed}") from None


def _positive_int(field: str, value: int | None) -> int:
    if value is None or isinstance(value, bool) or value <= 0:
        raise InvalidArgumentError(field, f"{field} must be a positive integer")
    return value


def _clock(field: str, value: str | None) -> str:
    text = (value or "").strip()
    if not is_clock_time(text):
        raise InvalidArgumentError(field, f"{field} must be a time in HH:mm format")
    return text


def _calendar_date(field: str, value: str | None) -> date:
    try:
        return parse_calendar_date(value or "")
    except ValueError:
        raise InvalidArgumentError(field, "Invalid date format") from None


def _check_interval(start_time: str, end_time: str) -> None:
    if clock_to_minutes(end_time) <= clock_to_minutes(start_time):
        raise InvalidArgumentError("end_time", "end_time must be after start_time")


def _students(value: list[str] | None) -> list[str]:
    seen: dict[str, None] = {}
    for student_id in value or []:
        cleaned = student_id.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


def validate_location(value: dict[str, Any] | None) -> GeoPoint | None:
    """Validate an optional lat/lng pair."""
    if value is None:
        return None
    try:
        point = GeoPoint.model_validate(value)
    except ValidationError:
        raise InvalidArgumentError("location", "Invalid location format") from None
    if not (-90 <= point.lat <= 90 and -180 <= point.lng <= 180):
        raise InvalidArgumentError("location", "Invalid coordinates")
    return point


def validate_create_task(
    request: CreateTaskRequest,
    settings: MutationSettings,
) -> dict[str, Any]:
    """Normalize a task creation request.

    Returns:
        Field values for the new task document.

    Raises:
        InvalidArgumentError: On the first invalid field.
    """
    title = _required_text("title", request.title, settings.title_max_length)
    description = _required_text(
        "description", request.description, settings.description_max_length
    )
    category = _optional_text(request.category) or DEFAULT_CATEGORY
    priority = (
        _enum_value("priority", TaskPriority, request.priority)
        if request.priority
        else TaskPriority.MEDIUM
    )
    location = validate_location(request.location)
    return {
        "title": title,
        "description": description,
        "category": category,
        "priority": priority,
        "location": location.model_dump() if location else None,
    }


def validate_task_status(value: str | None) -> TaskStatus:
    """Parse a requested task status."""
    return _enum_value("new_status", TaskStatus, value)


def validate_comment(text: str | None, settings: MutationSettings) -> str:
    """Trim and bound a comment body."""
    return _required_text("text", text, settings.comment_max_length)


def validate_create_exam(
    request: CreateExamRequest,
    settings: MutationSettings,
) -> dict[str, Any]:
    """Normalize an exam creation request.

    Returns:
        Field values for the new exam document.

    Raises:
        InvalidArgumentError: On the first invalid field.
    """
    title = _required_text("title", request.title, settings.title_max_length)
    course_code = _required_text("course_code", request.course_code)
    course_name = _required_text("course_name", request.course_name)
    exam_type = _enum_value("exam_type", ExamType, request.exam_type)
    scheduled_date = _calendar_date("scheduled_date", request.scheduled_date)
    start_time = _clock("start_time", request.start_time)
    end_time = _clock("end_time", request.end_time)
    _check_interval(start_time, end_time)
    duration = _positive_int("duration", request.duration)
    capacity = _positive_int("capacity", request.capacity)
    students = _students(request.enrolled_students)

    return {
        "title": title,
        "course_code": course_code,
        "course_name": course_name,
        "exam_type": exam_type,
        "scheduled_date": scheduled_date,
        "start_time": start_time,
        "end_time": end_time,
        "duration": duration,
        "room": _optional_text(request.room),
        "building": _optional_text(request.building),
        "capacity": capacity,
        "instructions": _optional_text(request.instructions),
        "enrolled_students": students,
        "student_count": len(students),
    }


def validate_update_exam(
    request: UpdateExamRequest,
    current: Exam,
    settings: MutationSettings,
) -> dict[str, Any]:
    """Normalize the explicitly supplied fields of an exam update.

    Interval validity is checked against the merged result, so changing
    only ``end_time`` is still rejected if it lands before the stored
    ``start_time``.

    Returns:
        Changed field values, possibly empty.

    Raises:
        InvalidArgumentError: On the first invalid field.
    """
    provided = request.provided()
    changes: dict[str, Any] = {}

    for name, value in provided.items():
        if name == "title":
            changes[name] = _required_text(name, value, settings.title_max_length)
        elif name in ("course_code", "course_name"):
            changes[name] = _required_text(name, value)
        elif name == "exam_type":
            changes[name] = _enum_value(name, ExamType, value)
        elif name == "scheduled_date":
            changes[name] = _calendar_date(name, value)
        elif name in ("start_time", "end_time"):
            changes[name] = _clock(name, value)
        elif name in ("duration", "capacity"):
            changes[name] = _positive_int(name, value)
        elif name in ("room", "building", "instructions"):
            changes[name] = _optional_text(value)
        elif name == "enrolled_students":
            students = _students(value)
            changes[name] = students
            changes["student_count"] = len(students)
        elif name == "status":
            changes[name] = _enum_value(name, ExamStatus, value)

    if "start_time" in changes or "end_time" in changes:
        _check_interval(
            changes.get("start_time", current.start_time),
            changes.get("end_time", current.end_time),
        )
    return changes


def validate_results(request: PublishExamResultsRequest) -> list[ExamResult]:
    """Parse result rows for publication."""
    if request.results is None:
        raise InvalidArgumentError("results", "results are required")
    rows: list[ExamResult] = []
    for index, row in enumerate(request.results):
        try:
            rows.append(ExamResult.model_validate(row))
        except ValidationError:
            raise InvalidArgumentError(
                f"results[{index}]", f"Invalid result row at position {index}"
            ) from None
    return rows
