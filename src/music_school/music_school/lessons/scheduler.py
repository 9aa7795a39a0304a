"""Bulk schedule generation for a fresh term."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional, Sequence

from ..common.time_utils import add_minutes
from ..core.constants import (
    DEFAULT_GENERATED_WEEKS,
    DEFAULT_LESSON_MINUTES,
    LUNCH_BREAK_TIME,
    ROOM_COUNT,
    SCHEDULE_DAYS,
    TIME_SLOTS,
)
from ..instructors.model import WEEKDAYS, Instructor
from ..students.model import Student
from .model import LessonDraft

logger = logging.getLogger(__name__)


@dataclass
class GeneratedSchedule:
    lessons: list[LessonDraft] = field(default_factory=list)
    # student_id -> instructor_id
    assignments: dict[int, int] = field(default_factory=dict)
    unplaced: list[int] = field(default_factory=list)


def _first_on_or_after(start: date, weekday_name: str) -> date:
    delta = (WEEKDAYS.index(weekday_name) - start.weekday()) % 7
    return start + timedelta(days=delta)


def generate_schedules(
    students: Sequence[Student],
    instructors: Sequence[Instructor],
    *,
    start: date,
    weeks: int = DEFAULT_GENERATED_WEEKS,
    rng: Optional[random.Random] = None,
) -> GeneratedSchedule:
    """Give every student one weekly slot and expand it over `weeks` weeks.

    Instructors are assigned round-robin. A slot holds at most one lesson per
    instructor and ROOM_COUNT lessons overall; a student gets at most one
    lesson per day.
    """

    result = GeneratedSchedule()
    if not students or not instructors:
        return result

    rng = rng or random.Random()
    slots = [(day, t) for day in SCHEDULE_DAYS for t in TIME_SLOTS if t != LUNCH_BREAK_TIME]
    rng.shuffle(slots)

    instructor_busy: set[tuple[int, str, str]] = set()
    room_count: dict[tuple[str, str], int] = {}
    student_days: set[tuple[int, str]] = set()

    for index, student in enumerate(students):
        instructor_id = instructors[index % len(instructors)].instructor_id
        result.assignments[student.student_id] = instructor_id

        for day, t in slots:
            used_rooms = room_count.get((day, t), 0)
            if (instructor_id, day, t) in instructor_busy or used_rooms >= ROOM_COUNT:
                continue
            if (student.student_id, day) in student_days:
                continue

            instructor_busy.add((instructor_id, day, t))
            room_count[(day, t)] = used_rooms + 1
            student_days.add((student.student_id, day))

            first = _first_on_or_after(start, day)
            for week in range(weeks):
                result.lessons.append(
                    LessonDraft(
                        student_id=student.student_id,
                        instructor_id=instructor_id,
                        room_id=used_rooms + 1,
                        lesson_date=first + timedelta(weeks=week),
                        start_time=t,
                        end_time=add_minutes(t, DEFAULT_LESSON_MINUTES),
                        notes="",
                    )
                )
            break
        else:
            logger.warning("Could not find a slot for student %s", student.student_id)
            result.unplaced.append(student.student_id)

    return result
