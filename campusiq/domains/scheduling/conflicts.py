# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Exam scheduling conflict detection.

The detector is a pure, single pass over a snapshot of existing exams
supplied by the caller. It never queries storage and never blocks a write:
results are reports that the caller attaches to the exam.

Time comparisons use same-day minute offsets with half-open
``[start, end)`` intervals, so back-to-back sittings do not clash.
"""

import logging
from collections.abc import Iterable

from campusiq.domains.lifecycle.exam import ACTIVE_STATUSES
from campusiq.models.exam import (
    ConflictRecord,
    ConflictSeverity,
    ConflictType,
    Exam,
    ExamScheduleFields,
)
from campusiq.utils.datetime import clock_to_minutes

logger = logging.getLogger(__name__)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Check whether two half-open minute intervals intersect."""
    return start_a < end_b and start_b < end_a


def _room_key(room: str | None) -> str | None:
    if room is None:
        return None
    stripped = room.strip()
    return stripped or None


def detect_conflicts(
    candidate: ExamScheduleFields,
    existing: Iterable[Exam],
) -> list[ConflictRecord]:
    """Compute scheduling conflicts for a proposed exam.

    Room clashes are reported as ROOM/ERROR. Shared students in an
    overlapping sitting produce one STUDENT/WARNING per conflicting exam,
    regardless of room. Cancelled and completed exams, exams on other
    dates and the candidate itself are skipped.

    Args:
        candidate: Schedule fields of the exam being created or updated.
        existing: Snapshot of stored exams, scanned in the given order.

    Returns:
        Conflict records in scan order. Empty when nothing clashes.

    Raises:
        ValueError: If the candidate's clock times are malformed.
    """
    start = clock_to_minutes(candidate.start_time)
    end = clock_to_minutes(candidate.end_time)
    room = _room_key(candidate.room)
    students = set(candidate.enrolled_students)

    conflicts: list[ConflictRecord] = []

    for other in existing:
        if candidate.exam_id is not None and other.id == candidate.exam_id:
            continue
        if other.status not in ACTIVE_STATUSES:
            continue
        if other.scheduled_date != candidate.scheduled_date:
            continue

        try:
            other_start = clock_to_minutes(other.start_time)
            other_end = clock_to_minutes(other.end_time)
        except ValueError:
            logger.warning("Skipping exam %s with malformed times", other.id)
            continue

        if not intervals_overlap(start, end, other_start, other_end):
            continue

        if room is not None and room == _room_key(other.room):
            conflicts.append(
                ConflictRecord(
                    type=ConflictType.ROOM,
                    severity=ConflictSeverity.ERROR,
                    conflicting_exam_id=other.id,
                    conflicting_exam_title=other.title,
                    message=f"Room {room} is already booked for {other.title} at this time",
                )
            )

        if students:
            shared = students.intersection(other.enrolled_students)
            if shared:
                conflicts.append(
                    ConflictRecord(
                        type=ConflictType.STUDENT,
                        severity=ConflictSeverity.WARNING,
                        conflicting_exam_id=other.id,
                        conflicting_exam_title=other.title,
                        message=(
                            f"{len(shared)} student(s) are enrolled in both "
                            "exams at the same time"
                        ),
                    )
                )

    return conflicts


def capacity_warnings(candidate: ExamScheduleFields) -> list[ConflictRecord]:
    """Flag enrollment above room capacity. Never an error."""
    enrolled = len(candidate.enrolled_students)
    if candidate.capacity is None or enrolled <= candidate.capacity:
        return []
    return [
        ConflictRecord(
            type=ConflictType.CAPACITY,
            severity=ConflictSeverity.WARNING,
            message=(
                f"{enrolled} students enrolled but capacity is {candidate.capacity}"
            ),
        )
    ]


def schedule_warnings(
    candidate: ExamScheduleFields,
    existing: Iterable[Exam],
) -> list[ConflictRecord]:
    """All warnings attached to an exam: overlaps first, then capacity."""
    return detect_conflicts(candidate, existing) + capacity_warnings(candidate)
