from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from ..core.enums import AttendanceStatus, LessonStatus

# UI field names for Lesson (everything else is plain camelCase).
LESSON_UI_RENAMES = {"lesson_id": "id", "lesson_date": "date", "start_time": "time"}


@dataclass(frozen=True)
class Lesson:
    lesson_id: int
    student_id: int
    instructor_id: int
    room_id: int
    lesson_date: date
    start_time: str
    end_time: str
    title: Optional[str] = None
    notes: Optional[str] = None
    status: LessonStatus = LessonStatus.SCHEDULED
    rate: Optional[float] = None
    parent_lesson_id: Optional[int] = None
    # Joined for display and conflict messages.
    student_name: Optional[str] = None
    instructor_name: Optional[str] = None

    @property
    def is_deleted(self) -> bool:
        return self.status == LessonStatus.DELETED

    def with_changes(self, **changes) -> "Lesson":
        return replace(self, **changes)


@dataclass(frozen=True)
class LessonDraft:
    """A lesson not yet persisted; input of create/move/conflict checks."""

    student_id: int
    instructor_id: int
    room_id: int
    lesson_date: date
    start_time: str
    end_time: str
    title: Optional[str] = None
    notes: Optional[str] = None
    status: LessonStatus = LessonStatus.SCHEDULED
    rate: Optional[float] = None
    parent_lesson_id: Optional[int] = None

    def to_row(self) -> dict:
        return {
            "student_id": self.student_id,
            "instructor_id": self.instructor_id,
            "room_id": self.room_id,
            "lesson_date": self.lesson_date,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "title": self.title,
            "notes": self.notes,
            "status": self.status.value,
            "rate": self.rate,
            "parent_lesson_id": self.parent_lesson_id,
        }


@dataclass(frozen=True)
class InstructorLessonRow:
    lesson: Lesson
    has_session_summary: bool
    has_attendance: bool
    attendance_status: Optional[AttendanceStatus] = None
    is_next_lesson: bool = False
