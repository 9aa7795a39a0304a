from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from ..billing.service import BillingService
from ..common.datetime_utils import now_local
from ..common.validators import parse_hhmm
from ..core.constants import ATTENDANCE_COOLDOWN_HOURS, DEFAULT_LATE_GRACE_MINUTES
from ..core.enums import AttendanceStatus
from ..core.exceptions import AuthorizationError, NotFoundError, SessionSummaryRequiredError, ValidationError
from ..lessons.model import Lesson
from ..lessons.repository import LessonRepository
from ..session_summaries.repository import SessionSummaryRepository
from ..students.repository import StudentRepository
from ..users.model import SessionUser
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord
from .repository import AttendanceRepository
from .validation import validate_attendance

logger = logging.getLogger(__name__)

ATTENDANCE_FIELDS = ("status", "arrival_time", "departure_time", "notes", "makeup_required")

SUMMARY_REQUIRED_MESSAGE = "Please submit a session summary for this lesson before marking attendance."


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        lessons: LessonRepository,
        summaries: SessionSummaryRepository,
        students: StudentRepository,
        billing: Optional[BillingService] = None,
        *,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._lessons = lessons
        self._summaries = summaries
        self._students = students
        self._billing = billing
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._grace_minutes = int(grace_minutes)
        self._clock = clock

    def _lesson_for(self, actor: SessionUser, lesson_id: int) -> Lesson:
        lesson = self._lessons.get_by_id(lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found")
        if not (actor.is_admin or actor.owns_instructor(lesson.instructor_id)):
            raise AuthorizationError("You can only mark attendance for your own lessons")
        return lesson

    def _require_summary(self, lesson_id: int) -> None:
        if self._summaries.get_by_lesson(lesson_id) is None:
            logger.warning("Attendance rejected for lesson %s: no session summary", lesson_id)
            raise SessionSummaryRequiredError(SUMMARY_REQUIRED_MESSAGE)

    def _decide(self, lesson: Lesson, form: dict[str, Any]) -> dict[str, Any]:
        """Fill in status (and a note) from the arrival time when the status is omitted."""

        if form.get("status"):
            return form
        arrival = parse_hhmm(form.get("arrival_time"), "Arrival time")
        strategy = self._factory.for_arrival(
            lesson_start=lesson.start_time, arrival_time=arrival, grace_minutes=self._grace_minutes
        )
        decision = strategy.decide(
            lesson_start=lesson.start_time, arrival_time=arrival, grace_minutes=self._grace_minutes
        )
        out = dict(form, status=decision.status.value)
        if decision.note and not out.get("notes"):
            out["notes"] = decision.note
        return out

    def _count_session(self, student_id: int, now: datetime) -> bool:
        """Bump sessions_attended once per cooldown window; True when counted."""

        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")

        last = student.last_attendance_marked_at
        if last and now - last < timedelta(hours=ATTENDANCE_COOLDOWN_HOURS):
            logger.info("Student %s already counted at %s, skipping increment", student_id, last)
            return False

        self._students.record_attendance(student_id, marked_at=now)
        if self._billing:
            self._billing.generate_due_billings(student_id)
        return True

    def mark(self, *, actor: SessionUser, lesson_id: int, form: dict[str, Any]) -> int:
        lesson = self._lesson_for(actor, lesson_id)
        self._require_summary(lesson.lesson_id)
        return self._mark_one(actor, lesson, form)

    def _mark_one(self, actor: SessionUser, lesson: Lesson, form: dict[str, Any]) -> int:
        try:
            student_id = int(form.get("student_id") or lesson.student_id)
        except (TypeError, ValueError):
            raise ValidationError("Student id must be a number")
        if self._attendance.get_for_lesson_and_student(lesson.lesson_id, student_id):
            raise ValidationError("Attendance has already been marked for this student")

        data = self._decide(lesson, {k: v for k, v in form.items() if k in ATTENDANCE_FIELDS})
        validate_attendance(data).raise_if_invalid()

        now = self._clock()
        status = AttendanceStatus(data["status"])
        record_id = self._attendance.create(
            {
                "lesson_id": lesson.lesson_id,
                "student_id": student_id,
                "instructor_id": lesson.instructor_id,
                "status": status,
                "arrival_time": data.get("arrival_time") or None,
                "departure_time": data.get("departure_time") or None,
                "notes": (data.get("notes") or "").strip() or None,
                "makeup_required": bool(data.get("makeup_required")),
                "marked_at": now,
                "marked_by": actor.user_id,
            }
        )
        logger.info("Attendance %s (%s) marked for lesson %s", record_id, status.value, lesson.lesson_id)

        if status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE):
            self._count_session(student_id, now)
        return record_id

    def bulk_mark(self, *, actor: SessionUser, records: Iterable[dict[str, Any]]) -> list[int]:
        """Mark several records; every distinct lesson must have a summary before anything is written."""

        records = list(records)
        lessons: dict[int, Lesson] = {}
        for i, r in enumerate(records, start=1):
            try:
                lesson_id = int(r.get("lesson_id"))
            except (TypeError, ValueError):
                raise ValidationError(f"Record {i}: lesson is required")
            if lesson_id not in lessons:
                lessons[lesson_id] = self._lesson_for(actor, lesson_id)

        for lesson_id in lessons:
            self._require_summary(lesson_id)

        return [self._mark_one(actor, lessons[int(r["lesson_id"])], r) for r in records]

    def update(self, *, actor: SessionUser, record_id: int, form: dict[str, Any]) -> None:
        record = self.get(record_id)
        self._lesson_for(actor, record.lesson_id)

        changes = {k: v for k, v in form.items() if k in ATTENDANCE_FIELDS}
        merged = {
            "status": record.status.value,
            "arrival_time": record.arrival_time,
            "departure_time": record.departure_time,
            **changes,
        }
        validate_attendance(merged).raise_if_invalid()

        if "status" in changes:
            changes["status"] = AttendanceStatus(changes["status"])
        if "makeup_required" in changes:
            changes["makeup_required"] = bool(changes["makeup_required"])
        if changes:
            self._attendance.update(record_id, changes)
            logger.info("Attendance %s updated", record_id)

    def delete(self, *, actor: SessionUser, record_id: int) -> None:
        record = self.get(record_id)
        self._lesson_for(actor, record.lesson_id)
        self._attendance.delete(record_id)
        logger.info("Attendance %s deleted", record_id)

    def get(self, record_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(record_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def list_for_lesson(self, lesson_id: int) -> list[AttendanceRecord]:
        return list(self._attendance.list_for_lesson(lesson_id))

    def list_for_student(self, student_id: int, *, start: date, end: date) -> list[AttendanceRecord]:
        if end < start:
            raise ValidationError("End date must be on or after start date")
        return list(self._attendance.list_range(start=start, end=end, student_id=student_id))
