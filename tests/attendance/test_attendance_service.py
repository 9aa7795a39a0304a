from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from src.music_school.music_school.attendance.service import SUMMARY_REQUIRED_MESSAGE, AttendanceService
from src.music_school.music_school.billing.service import BillingService
from src.music_school.music_school.core.enums import AttendanceStatus, BillingStatus
from src.music_school.music_school.core.exceptions import (
    AuthorizationError,
    SessionSummaryRequiredError,
    ValidationError,
)
from src.music_school.music_school.session_summaries.model import SessionSummary
from tests.fakes import (
    ADMIN,
    INSTRUCTOR,
    OTHER_INSTRUCTOR,
    FakeAttendanceRepo,
    FakeBillingRepo,
    FakeLessonRepo,
    FakePaymentRepo,
    FakeStudentRepo,
    FakeSummaryRepo,
    make_lesson,
    make_student,
)

NOW = datetime(2026, 3, 2, 11, 0)


def _summary(lesson_id):
    return SessionSummary(summary_id=lesson_id, lesson_id=lesson_id, instructor_id=10, summary_text="Scales and arpeggios")


class Env:
    def __init__(self, *, student=None, summarized=(1,)):
        self.lessons = FakeLessonRepo([make_lesson(1), make_lesson(2, on=date(2026, 3, 3))])
        self.summaries = FakeSummaryRepo([_summary(i) for i in summarized])
        self.students = FakeStudentRepo([student or make_student(1)])
        self.attendance = FakeAttendanceRepo()
        self.payments = FakePaymentRepo()
        self.billings = FakeBillingRepo(self.payments)
        self.billing = BillingService(self.billings, self.payments, self.students, clock=lambda: NOW)
        self.svc = AttendanceService(
            self.attendance,
            self.lessons,
            self.summaries,
            self.students,
            self.billing,
            grace_minutes=10,
            clock=lambda: NOW,
        )


def test_marking_requires_a_session_summary():
    env = Env(summarized=())

    with pytest.raises(SessionSummaryRequiredError) as e:
        env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"status": "absent"})

    assert str(e.value) == SUMMARY_REQUIRED_MESSAGE
    assert env.attendance.rows == {}


def test_status_derived_from_arrival_and_session_counted():
    env = Env()

    rid = env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"arrival_time": "10:05"})

    record = env.attendance.rows[rid]
    assert record.status == AttendanceStatus.PRESENT
    assert (record.marked_by, record.marked_at, record.instructor_id) == (INSTRUCTOR.user_id, NOW, 10)
    student = env.students.rows[1]
    assert student.sessions_attended == 1
    assert student.last_attendance_marked_at == NOW


def test_late_arrival_gets_note():
    env = Env()

    rid = env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"arrival_time": "10:20"})

    assert env.attendance.rows[rid].status == AttendanceStatus.LATE
    assert env.attendance.rows[rid].notes == "Arrived 20 min late"


def test_absent_is_not_counted():
    env = Env()
    env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"status": "absent"})
    assert env.students.rows[1].sessions_attended == 0


def test_duplicate_mark_rejected():
    env = Env()
    env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"status": "absent"})

    with pytest.raises(ValidationError, match="already been marked"):
        env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"status": "absent"})


def test_cooldown_skips_second_increment_within_a_day():
    env = Env(student=make_student(1, sessions_attended=2, last_attendance_marked_at=NOW - timedelta(hours=3)))

    rid = env.svc.mark(actor=ADMIN, lesson_id=1, form={"status": "present", "arrival_time": "10:00"})

    assert rid in env.attendance.rows
    assert env.students.rows[1].sessions_attended == 2
    assert env.students.attendance_calls == []


def test_fourth_session_issues_invoice():
    env = Env(student=make_student(1, sessions_attended=3))

    env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"status": "present", "arrival_time": "10:00"})

    [billing] = env.billings.list_all()
    assert billing.status == BillingStatus.PENDING
    assert billing.sessions_covered == 4
    assert billing.amount == 2000.0


def test_other_instructor_cannot_mark():
    env = Env()
    with pytest.raises(AuthorizationError):
        env.svc.mark(actor=OTHER_INSTRUCTOR, lesson_id=1, form={"status": "absent"})


def test_bulk_mark_checks_every_summary_first():
    env = Env(summarized=(1,))

    with pytest.raises(SessionSummaryRequiredError):
        env.svc.bulk_mark(
            actor=ADMIN,
            records=[{"lesson_id": 1, "status": "absent"}, {"lesson_id": 2, "status": "absent"}],
        )
    assert env.attendance.rows == {}


def test_bulk_mark_writes_all_records():
    env = Env(summarized=(1, 2))

    ids = env.svc.bulk_mark(
        actor=ADMIN,
        records=[{"lesson_id": 1, "status": "absent"}, {"lesson_id": 2, "status": "excused"}],
    )

    assert [env.attendance.rows[i].status for i in ids] == [AttendanceStatus.ABSENT, AttendanceStatus.EXCUSED]


def test_update_validates_against_stored_record():
    env = Env()
    rid = env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form={"status": "absent"})

    with pytest.raises(ValidationError, match="Arrival time is required when marking as late"):
        env.svc.update(actor=INSTRUCTOR, record_id=rid, form={"status": "late"})

    env.svc.update(actor=INSTRUCTOR, record_id=rid, form={"status": "late", "arrival_time": "10:30"})
    assert env.attendance.rows[rid].status == AttendanceStatus.LATE


def test_student_history_range_is_checked():
    env = Env()
    with pytest.raises(ValidationError):
        env.svc.list_for_student(1, start=date(2026, 3, 2), end=date(2026, 3, 1))


@pytest.mark.parametrize(
    "form, message",
    [
        ({"arrival_time": "ten"}, "Invalid arrival time format"),
        ({"status": "present", "student_id": "abc", "arrival_time": "10:00"}, "Student id must be a number"),
    ],
)
def test_malformed_form_is_a_validation_error(form, message):
    env = Env()

    with pytest.raises(ValidationError, match=message):
        env.svc.mark(actor=INSTRUCTOR, lesson_id=1, form=form)
    assert env.attendance.rows == {}
