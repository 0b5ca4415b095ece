# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for boundary request validation."""

from datetime import date, datetime, timezone

import pytest

from campusiq.core.config import MutationSettings
from campusiq.domains.mutation import InvalidArgumentError
from campusiq.domains.mutation.validation import (
    validate_comment,
    validate_create_exam,
    validate_create_task,
    validate_location,
    validate_results,
    validate_task_status,
    validate_update_exam,
)
from campusiq.models.exam import (
    Exam,
    ExamStatus,
    ExamType,
    PublishExamResultsRequest,
    UpdateExamRequest,
)
from campusiq.models.task import CreateTaskRequest, TaskPriority, TaskStatus


@pytest.fixture
def settings() -> MutationSettings:
    return MutationSettings()


@pytest.fixture
def stored_exam() -> Exam:
    return Exam(
        id="e1",
        title="Calculus Midterm",
        course_code="MATH101",
        course_name="Calculus I",
        exam_type=ExamType.MIDTERM,
        scheduled_date=date(2025, 3, 10),
        start_time="09:00",
        end_time="11:00",
        duration=120,
        room="R1",
        capacity=40,
        created_by="director-1",
        created_at=datetime(2025, 3, 1, tzinfo=timezone.utc),
    )


class TestCreateTask:
    """Tests for validate_create_task."""

    def test_normalizes_fields(self, settings: MutationSettings) -> None:
        request = CreateTaskRequest(
            title="  Broken projector ",
            description="No power",
            priority="high",
        )

        fields = validate_create_task(request, settings)

        assert fields["title"] == "Broken projector"
        assert fields["priority"] == TaskPriority.HIGH
        assert fields["category"] == "General"
        assert fields["location"] is None

    def test_priority_defaults_to_medium(self, settings: MutationSettings) -> None:
        fields = validate_create_task(CreateTaskRequest(title="t", description="d"), settings)
        assert fields["priority"] == TaskPriority.MEDIUM

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_missing_title(self, settings: MutationSettings, title) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_create_task(CreateTaskRequest(title=title, description="d"), settings)
        assert exc_info.value.field == "title"

    def test_title_length_limit(self, settings: MutationSettings) -> None:
        request = CreateTaskRequest(title="x" * 201, description="d")
        with pytest.raises(InvalidArgumentError, match="max 200"):
            validate_create_task(request, settings)

    def test_unknown_priority(self, settings: MutationSettings) -> None:
        request = CreateTaskRequest(title="t", description="d", priority="URGENT")
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_create_task(request, settings)
        assert exc_info.value.field == "priority"


class TestLocation:
    """Tests for validate_location."""

    def test_valid(self) -> None:
        assert validate_location({"lat": 12.5, "lng": -45.0}).lat == 12.5

    @pytest.mark.parametrize(
        "value",
        [{"lat": 91, "lng": 0}, {"lat": 0, "lng": 181}, {"lat": "north", "lng": 0}, {}],
    )
    def test_invalid(self, value) -> None:
        with pytest.raises(InvalidArgumentError):
            validate_location(value)


class TestStatusAndComment:
    """Tests for status parsing and comment bounds."""

    def test_status_is_case_insensitive(self) -> None:
        assert validate_task_status("resolved") == TaskStatus.RESOLVED

    def test_unknown_status(self) -> None:
        with pytest.raises(InvalidArgumentError, match="NEW, IN_PROGRESS"):
            validate_task_status("DONE")

    def test_comment_trimmed(self, settings: MutationSettings) -> None:
        assert validate_comment("  looks good ", settings) == "looks good"

    def test_comment_too_long(self, settings: MutationSettings) -> None:
        with pytest.raises(InvalidArgumentError):
            validate_comment("x" * 2001, settings)


class TestCreateExam:
    """Tests for validate_create_exam."""

    def test_normalizes_fields(self, settings: MutationSettings, exam_request) -> None:
        request = exam_request(enrolled_students=["s1", " s1 ", "s2", ""], exam_type="final")

        fields = validate_create_exam(request, settings)

        assert fields["exam_type"] == ExamType.FINAL
        assert fields["scheduled_date"] == date(2025, 3, 10)
        assert fields["enrolled_students"] == ["s1", "s2"]
        assert fields["student_count"] == 2

    def test_accepts_iso_datetime(self, settings: MutationSettings, exam_request) -> None:
        fields = validate_create_exam(
            exam_request(scheduled_date="2025-03-10T23:30:00Z"), settings
        )
        assert fields["scheduled_date"] == date(2025, 3, 10)

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"scheduled_date": "10/03/2025"}, "scheduled_date"),
            ({"start_time": "9:00"}, "start_time"),
            ({"end_time": "08:00"}, "end_time"),
            ({"end_time": "09:00"}, "end_time"),
            ({"duration": 0}, "duration"),
            ({"capacity": None}, "capacity"),
            ({"exam_type": "ORAL"}, "exam_type"),
            ({"course_code": " "}, "course_code"),
        ],
    )
    def test_rejects(self, settings: MutationSettings, exam_request, overrides, field) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_create_exam(exam_request(**overrides), settings)
        assert exc_info.value.field == field


class TestUpdateExam:
    """Tests for validate_update_exam."""

    def test_only_provided_fields(self, settings: MutationSettings, stored_exam: Exam) -> None:
        changes = validate_update_exam(
            UpdateExamRequest(room=" R2 ", expected_version=3), stored_exam, settings
        )
        assert changes == {"room": "R2"}

    def test_nothing_provided(self, settings: MutationSettings, stored_exam: Exam) -> None:
        assert validate_update_exam(UpdateExamRequest(), stored_exam, settings) == {}

    def test_interval_checked_against_stored_start(
        self, settings: MutationSettings, stored_exam: Exam
    ) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_update_exam(UpdateExamRequest(end_time="08:30"), stored_exam, settings)
        assert exc_info.value.field == "end_time"

    def test_students_update_recounts(
        self, settings: MutationSettings, stored_exam: Exam
    ) -> None:
        changes = validate_update_exam(
            UpdateExamRequest(enrolled_students=["a", "b", "a"]), stored_exam, settings
        )
        assert changes == {"enrolled_students": ["a", "b"], "student_count": 2}

    def test_status_parsed(self, settings: MutationSettings, stored_exam: Exam) -> None:
        changes = validate_update_exam(
            UpdateExamRequest(status="scheduled"), stored_exam, settings
        )
        assert changes == {"status": ExamStatus.SCHEDULED}


class TestResults:
    """Tests for validate_results."""

    def test_rows_parsed(self) -> None:
        rows = validate_results(
            PublishExamResultsRequest(results=[{"student_id": "s1", "score": 88}])
        )
        assert rows[0].student_id == "s1"
        assert rows[0].score == 88

    def test_missing_results(self) -> None:
        with pytest.raises(InvalidArgumentError):
            validate_results(PublishExamResultsRequest())

    def test_bad_row_named_by_position(self) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_results(
                PublishExamResultsRequest(results=[{"student_id": "s1"}, {"score": 3}])
            )
        assert exc_info.value.field == "results[1]"
