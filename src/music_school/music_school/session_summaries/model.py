from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class PracticeAssignment:
    title: str
    description: str
    duration: Optional[int] = None  # minutes per day


@dataclass(frozen=True)
class SessionSummary:
    summary_id: int
    lesson_id: int
    instructor_id: int
    summary_text: str
    topics_covered: list[str] = field(default_factory=list)
    homework_assigned: Optional[str] = None
    student_progress: Optional[str] = None
    next_lesson_focus: Optional[str] = None
    achievements: Optional[str] = None
    student_performance_rating: Optional[int] = None
    lesson_difficulty_rating: Optional[int] = None
    practice_assignments: list[PracticeAssignment] = field(default_factory=list)
    recommended_practice_time: Optional[int] = None
    is_complete: bool = True
    requires_admin_review: bool = False
    admin_reviewed_at: Optional[datetime] = None
    admin_reviewed_by: Optional[int] = None
    submitted_at: Optional[datetime] = None
    # Joined from lessons/students for list views.
    student_id: Optional[int] = None
    student_name: Optional[str] = None
    lesson_date: Optional[date] = None
