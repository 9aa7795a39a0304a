"""Double-booking detection for lessons.

Two lessons collide when they are on the same date and their [start, end)
ranges overlap. Deleted (trashed) lessons never collide.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from ..common.time_utils import ranges_overlap
from .model import Lesson, LessonDraft

Candidate = Union[Lesson, LessonDraft]


@dataclass(frozen=True)
class Conflict:
    lesson_id: int
    kind: str  # "instructor" | "room" | "student"
    message: str


def _overlapping(candidate: Candidate, existing: Iterable[Lesson], ignore_id: Optional[int]):
    for lesson in existing:
        if ignore_id is not None and lesson.lesson_id == ignore_id:
            continue
        if lesson.is_deleted or lesson.lesson_date != candidate.lesson_date:
            continue
        if ranges_overlap(lesson.start_time, lesson.end_time, candidate.start_time, candidate.end_time):
            yield lesson


def _classify(candidate: Candidate, lesson: Lesson) -> Optional[Conflict]:
    if lesson.instructor_id == candidate.instructor_id:
        return Conflict(
            lesson.lesson_id,
            "instructor",
            f"Instructor {lesson.instructor_name or ''} is already scheduled during this time.",
        )
    if lesson.room_id == candidate.room_id:
        return Conflict(lesson.lesson_id, "room", f"Room {lesson.room_id} is already booked during this time.")
    if lesson.student_id == candidate.student_id:
        return Conflict(
            lesson.lesson_id,
            "student",
            f"Student {lesson.student_name or ''} already has a lesson during this time.",
        )
    return None


def find_conflict(candidate: Candidate, existing: Iterable[Lesson], *, ignore_id: Optional[int] = None) -> Optional[str]:
    """Message for the first colliding lesson, or None when the slot is free."""

    for lesson in _overlapping(candidate, existing, ignore_id):
        conflict = _classify(candidate, lesson)
        if conflict:
            return conflict.message
    return None


def list_conflicts(candidate: Candidate, existing: Iterable[Lesson], *, ignore_id: Optional[int] = None) -> list[Conflict]:
    return [c for c in (_classify(candidate, l) for l in _overlapping(candidate, existing, ignore_id)) if c]
