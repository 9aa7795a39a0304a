from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import now_local, parse_iso_date
from ..common.mappers import from_ui
from ..common.time_utils import add_minutes, crosses_lunch, duration_minutes, round_to_quarter, to_minutes
from ..common.validators import is_hhmm
from ..core.constants import DEFAULT_LESSON_MINUTES, LUNCH_BREAK_TIME, MAX_REPEAT_WEEKS, ROOM_COUNT
from ..core.enums import LessonStatus
from ..core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..instructors.repository import InstructorRepository
from ..session_summaries.repository import SessionSummaryRepository
from ..students.repository import StudentRepository
from ..users.model import SessionUser
from .conflicts import Conflict, find_conflict, list_conflicts
from .model import InstructorLessonRow, Lesson, LessonDraft
from .repository import LessonRepository
from .scheduler import generate_schedules

logger = logging.getLogger(__name__)

LESSON_FIELDS = (
    "student_id",
    "instructor_id",
    "room_id",
    "lesson_date",
    "start_time",
    "end_time",
    "title",
    "notes",
    "rate",
)

# UI payloads name the date and start time "date" and "time".
_UI_KEYS = {"date": "lesson_date", "time": "start_time"}

INACTIVE_STUDENT_MESSAGE = (
    "This student is not currently enrolled. Please activate the student to schedule new lessons."
)
LUNCH_MESSAGE = f"Cannot schedule a lesson overlapping the lunch break ({LUNCH_BREAK_TIME})."


@dataclass(frozen=True)
class GenerateResult:
    created: int
    skipped: int
    unplaced: list[int]


def lesson_form_from_ui(payload: dict) -> dict:
    renamed = {_UI_KEYS.get(k, k): v for k, v in (payload or {}).items()}
    return from_ui(renamed, allowed=LESSON_FIELDS)


def _as_int(value: Any, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} is required")


def draft_from_form(form: dict[str, Any]) -> LessonDraft:
    """Build a validated LessonDraft from snake_case form data."""

    student_id = _as_int(form.get("student_id"), "Student")
    instructor_id = _as_int(form.get("instructor_id"), "Instructor")
    room_id = _as_int(form.get("room_id") or 1, "Room")
    if not 1 <= room_id <= ROOM_COUNT:
        raise ValidationError(f"Room must be between 1 and {ROOM_COUNT}")

    lesson_date = form.get("lesson_date")
    if not isinstance(lesson_date, date):
        lesson_date = parse_iso_date(str(lesson_date or ""))

    start = (form.get("start_time") or "").strip()
    if not is_hhmm(start):
        raise ValidationError("Invalid lesson time (use HH:MM)")
    start = add_minutes(start, 0)
    end = (form.get("end_time") or "").strip() or add_minutes(start, DEFAULT_LESSON_MINUTES)
    if not is_hhmm(end):
        raise ValidationError("Invalid end time (use HH:MM)")
    end = add_minutes(end, 0)
    if to_minutes(end) <= to_minutes(start):
        raise ValidationError("End time must be after start time")

    rate = form.get("rate")
    if rate not in (None, ""):
        try:
            rate = float(rate)
        except (TypeError, ValueError):
            raise ValidationError("Rate must be a number")
    else:
        rate = None

    return LessonDraft(
        student_id=student_id,
        instructor_id=instructor_id,
        room_id=room_id,
        lesson_date=lesson_date,
        start_time=start,
        end_time=end,
        title=(form.get("title") or "").strip() or None,
        notes=(form.get("notes") or "").strip() or None,
        rate=rate,
    )


def _at_lunch(draft: LessonDraft) -> bool:
    return draft.start_time == LUNCH_BREAK_TIME or crosses_lunch(draft.start_time, draft.end_time)


def _draft_of(lesson: Lesson) -> LessonDraft:
    return LessonDraft(
        student_id=lesson.student_id,
        instructor_id=lesson.instructor_id,
        room_id=lesson.room_id,
        lesson_date=lesson.lesson_date,
        start_time=lesson.start_time,
        end_time=lesson.end_time,
        title=lesson.title,
        notes=lesson.notes,
        status=lesson.status,
        rate=lesson.rate,
        parent_lesson_id=lesson.parent_lesson_id,
    )


class LessonService:
    def __init__(
        self,
        lessons: LessonRepository,
        students: StudentRepository,
        instructors: InstructorRepository,
        summaries: SessionSummaryRepository,
        attendance: AttendanceRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._lessons = lessons
        self._students = students
        self._instructors = instructors
        self._summaries = summaries
        self._attendance = attendance
        self._clock = clock

    # Guards

    def _require_active_student(self, student_id: int, message: str = INACTIVE_STUDENT_MESSAGE) -> None:
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")
        if not student.is_active:
            logger.warning("Scheduling rejected: student %s is inactive", student_id)
            raise ValidationError(message.format(name=student.name))

    def _conflict_for(self, draft: LessonDraft, ignore_id: Optional[int] = None) -> Optional[str]:
        existing = self._lessons.list_range(start=draft.lesson_date, end=draft.lesson_date)
        return find_conflict(draft, existing, ignore_id=ignore_id)

    def _guard_slot(self, draft: LessonDraft, *, ignore_id: Optional[int] = None, prefix: str = "") -> None:
        if _at_lunch(draft):
            raise ValidationError(LUNCH_MESSAGE)
        conflict = self._conflict_for(draft, ignore_id)
        if conflict:
            logger.warning("Lesson conflict on %s %s: %s", draft.lesson_date, draft.start_time, conflict)
            raise ConflictError(prefix + conflict)

    def _slot_free(self, draft: LessonDraft) -> bool:
        if _at_lunch(draft):
            return False
        return self._conflict_for(draft) is None

    @staticmethod
    def _check_repeat_weeks(repeat_weekly: bool, repeat_weeks: int) -> int:
        if not repeat_weekly or not repeat_weeks:
            return 0
        if not 1 <= int(repeat_weeks) <= MAX_REPEAT_WEEKS:
            raise ValidationError(f"Repeat weeks must be between 1 and {MAX_REPEAT_WEEKS}")
        return int(repeat_weeks)

    def _create_repeats(self, base: LessonDraft, parent_id: int, weeks: int) -> list[int]:
        """Weekly copies of `base` after its date; occurrences that do not fit are skipped."""

        ids = []
        for week in range(1, weeks + 1):
            occurrence = replace(
                base,
                lesson_date=base.lesson_date + timedelta(weeks=week),
                parent_lesson_id=parent_id,
                status=LessonStatus.SCHEDULED,
            )
            if not self._slot_free(occurrence):
                logger.info("Skipping repeat of lesson %s on %s", parent_id, occurrence.lesson_date)
                continue
            ids.append(self._lessons.create(occurrence.to_row()))
        return ids

    # Commands

    def create(
        self,
        *,
        actor: SessionUser,
        form: dict[str, Any],
        repeat_weekly: bool = False,
        repeat_weeks: int = 0,
    ) -> list[int]:
        """Create a lesson (and optional weekly repeats). Returns the new ids, first one is the lesson itself."""

        draft = draft_from_form(form)
        if not actor.owns_instructor(draft.instructor_id):
            raise AuthorizationError("You can only schedule your own lessons")
        weeks = self._check_repeat_weeks(repeat_weekly, repeat_weeks)
        self._require_active_student(draft.student_id)
        self._guard_slot(draft)

        lesson_id = self._lessons.create(draft.to_row())
        ids = [lesson_id]
        if weeks:
            ids += self._create_repeats(draft, lesson_id, weeks)

        logger.info("Lesson %s created (%d occurrence(s))", lesson_id, len(ids))
        return ids

    def update(
        self,
        *,
        actor: SessionUser,
        lesson_id: int,
        form: dict[str, Any],
        repeat_weekly: bool = False,
        repeat_weeks: int = 0,
    ) -> list[int]:
        current = self.get(lesson_id)
        if not actor.owns_instructor(current.instructor_id):
            raise AuthorizationError("You can only edit your own lessons")

        merged = {k: getattr(current, k) for k in LESSON_FIELDS}
        merged.update({k: v for k, v in form.items() if k in LESSON_FIELDS})
        new_start = (merged.get("start_time") or "").strip()
        if not form.get("end_time") and is_hhmm(new_start):
            # a new start keeps the lesson's length
            merged["end_time"] = add_minutes(new_start, duration_minutes(current.start_time, current.end_time))
        draft = draft_from_form(merged)
        weeks = self._check_repeat_weeks(repeat_weekly, repeat_weeks)
        self._guard_slot(draft, ignore_id=lesson_id)

        row = draft.to_row()
        row["status"] = LessonStatus.SCHEDULED.value
        row.pop("parent_lesson_id")
        self._lessons.update(lesson_id, row)

        if draft.instructor_id != current.instructor_id:
            self._students.update(draft.student_id, {"instructor_id": draft.instructor_id})
            logger.info("Student %s now assigned to instructor %s", draft.student_id, draft.instructor_id)

        created: list[int] = []
        if weeks:
            created = self._create_repeats(draft, current.parent_lesson_id or lesson_id, weeks)
        logger.info("Lesson %s updated", lesson_id)
        return created

    def move(
        self,
        *,
        actor: SessionUser,
        lesson_id: int,
        new_date: date,
        new_time: Optional[str] = None,
        copy: bool = False,
    ) -> int:
        """Drag-and-drop: move (or copy) a lesson keeping its duration. Returns the lesson id."""

        original = self.get(lesson_id)
        if not actor.owns_instructor(original.instructor_id):
            raise AuthorizationError("You can only move your own lessons")
        self._require_active_student(
            original.student_id, "Cannot schedule lessons for {name} because they are not enrolled."
        )

        if new_time and not is_hhmm(new_time):
            raise ValidationError("Invalid lesson time (use HH:MM)")
        start = round_to_quarter(new_time) if new_time else original.start_time
        end = add_minutes(start, duration_minutes(original.start_time, original.end_time))
        moved = replace(_draft_of(original), lesson_date=new_date, start_time=start, end_time=end)

        if copy:
            copied = replace(
                moved,
                notes=f"(Copied) {original.notes or ''}".strip(),
                status=LessonStatus.SCHEDULED,
                parent_lesson_id=None,
            )
            self._guard_slot(copied, prefix="Could not copy lesson: ")
            new_id = self._lessons.create(copied.to_row())
            logger.info("Lesson %s copied to %s (%s %s)", lesson_id, new_id, new_date, start)
            return new_id

        self._guard_slot(moved, ignore_id=lesson_id, prefix="Could not move lesson: ")
        self._lessons.update(lesson_id, {"lesson_date": new_date, "start_time": start, "end_time": end})
        logger.info("Lesson %s moved to %s %s", lesson_id, new_date, start)
        return lesson_id

    def soft_delete(self, *, actor: SessionUser, lesson_id: int) -> None:
        lesson = self.get(lesson_id)
        if not actor.owns_instructor(lesson.instructor_id):
            raise AuthorizationError("You can only delete your own lessons")
        self._lessons.update(lesson_id, {"status": LessonStatus.DELETED.value})
        logger.info("Lesson %s moved to trash", lesson_id)

    def restore(self, *, actor: SessionUser, lesson_id: int) -> None:
        lesson = self.get(lesson_id)
        if not actor.owns_instructor(lesson.instructor_id):
            raise AuthorizationError("You can only restore your own lessons")
        if not lesson.is_deleted:
            raise ValidationError("Lesson is not in the trash")

        conflict = self._conflict_for(_draft_of(lesson), ignore_id=lesson_id)
        if conflict:
            raise ConflictError(f"Could not restore lesson: {conflict}")
        self._lessons.update(lesson_id, {"status": LessonStatus.SCHEDULED.value})
        logger.info("Lesson %s restored", lesson_id)

    def delete_permanently(self, *, actor: SessionUser, lesson_id: int) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can permanently delete lessons")
        self.get(lesson_id)
        self._lessons.delete(lesson_id)
        logger.info("Lesson %s permanently deleted", lesson_id)

    def update_status(self, *, actor: SessionUser, lesson_id: int, status: str) -> None:
        lesson = self.get(lesson_id)
        if not actor.owns_instructor(lesson.instructor_id):
            raise AuthorizationError("You can only update your own lessons")
        try:
            new_status = LessonStatus(status)
        except ValueError:
            raise ValidationError("Invalid lesson status")
        self._lessons.update(lesson_id, {"status": new_status.value})
        logger.info("Lesson %s status -> %s", lesson_id, new_status.value)

    def generate(self, *, actor: SessionUser, start: date, weeks: int, rng: Optional[random.Random] = None) -> GenerateResult:
        """Persist a generated term for all active students; occurrences colliding with existing lessons are skipped."""

        if not actor.is_admin:
            raise AuthorizationError("Only admins can generate schedules")
        if not 1 <= weeks <= MAX_REPEAT_WEEKS:
            raise ValidationError(f"Weeks must be between 1 and {MAX_REPEAT_WEEKS}")

        students = [s for s in self._students.list_all() if s.is_active]
        instructors = [i for i in self._instructors.list_all() if i.is_active]
        schedule = generate_schedules(students, instructors, start=start, weeks=weeks, rng=rng)

        for student_id, instructor_id in schedule.assignments.items():
            self._students.update(student_id, {"instructor_id": instructor_id})

        created = skipped = 0
        for draft in schedule.lessons:
            if self._conflict_for(draft):
                skipped += 1
                continue
            self._lessons.create(draft.to_row())
            created += 1

        logger.info("Generated %d lessons (%d skipped, %d unplaced)", created, skipped, len(schedule.unplaced))
        return GenerateResult(created=created, skipped=skipped, unplaced=schedule.unplaced)

    # Queries

    def get(self, lesson_id: int) -> Lesson:
        lesson = self._lessons.get_by_id(lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found")
        return lesson

    def list_range(self, start: date, end: date) -> list[Lesson]:
        if end < start:
            raise ValidationError("End date must be on or after start date")
        return list(self._lessons.list_range(start=start, end=end))

    def list_for_instructor(self, instructor_id: int, *, start: date, end: date) -> list[Lesson]:
        return list(self._lessons.list_range(start=start, end=end, instructor_id=instructor_id))

    def list_for_student(self, student_id: int, *, start: date, end: date) -> list[Lesson]:
        return list(self._lessons.list_range(start=start, end=end, student_id=student_id))

    def list_deleted(self) -> list[Lesson]:
        return list(self._lessons.list_deleted())

    def check_conflicts(self, form: dict[str, Any], *, ignore_id: Optional[int] = None) -> list[Conflict]:
        draft = draft_from_form(form)
        existing = self._lessons.list_range(start=draft.lesson_date, end=draft.lesson_date)
        return list_conflicts(draft, existing, ignore_id=ignore_id)

    def instructor_schedule(self, instructor_id: int, *, start: date, end: date) -> list[InstructorLessonRow]:
        lessons = self.list_for_instructor(instructor_id, start=start, end=end)
        ids = [l.lesson_id for l in lessons]
        with_summary = self._summaries.lesson_ids_with_summary(ids)
        statuses = self._attendance.statuses_for_lessons(ids)
        return [
            InstructorLessonRow(
                lesson=l,
                has_session_summary=l.lesson_id in with_summary,
                has_attendance=l.lesson_id in statuses,
                attendance_status=statuses.get(l.lesson_id),
            )
            for l in lessons
        ]

    def todays_lessons(self, instructor_id: int, *, now: Optional[datetime] = None) -> list[InstructorLessonRow]:
        """Today's lessons; the first one not yet started is flagged as the next lesson."""

        now = now or self._clock()
        rows = self.instructor_schedule(instructor_id, start=now.date(), end=now.date())
        current = now.strftime("%H:%M")

        out = []
        flagged = False
        for row in rows:
            is_next = (
                not flagged
                and row.lesson.status == LessonStatus.SCHEDULED
                and to_minutes(row.lesson.start_time) >= to_minutes(current)
            )
            flagged = flagged or is_next
            out.append(replace(row, is_next_lesson=is_next))
        return out
