from __future__ import annotations

from datetime import date, datetime

import pytest

from src.music_school.music_school.attendance.model import AttendanceRecord
from src.music_school.music_school.core.enums import AttendanceStatus, LessonStatus, PaymentMethod
from src.music_school.music_school.core.exceptions import NotFoundError, ValidationError
from src.music_school.music_school.instructors.service import InstructorService
from src.music_school.music_school.lessons.service import LessonService
from src.music_school.music_school.reports.service import ReportService, export_attendance_xlsx
from src.music_school.music_school.session_summaries.model import SessionSummary
from tests.fakes import (
    FakeAttendanceRepo,
    FakeBillingRepo,
    FakeInstructorRepo,
    FakeLessonRepo,
    FakePaymentRepo,
    FakeStudentRepo,
    FakeSummaryRepo,
    make_instructor,
    make_lesson,
    make_student,
)


def _record(rid, student_id, status, on, name="Ana Cruz", instructor_id=10):
    return AttendanceRecord(
        record_id=rid,
        lesson_id=rid,
        student_id=student_id,
        instructor_id=instructor_id,
        status=status,
        student_name=name,
        lesson_date=on,
    )


class Env:
    def __init__(self, *, lessons=(), records=(), summaries=()):
        self.students = FakeStudentRepo([make_student(1), make_student(2, "Ben Reyes")])
        self.instructors = FakeInstructorRepo([make_instructor(10)])
        self.lessons = FakeLessonRepo(lessons)
        self.attendance = FakeAttendanceRepo(records)
        self.payments = FakePaymentRepo()
        self.billings = FakeBillingRepo(self.payments)
        self.summaries = FakeSummaryRepo(summaries)
        lesson_service = LessonService(
            self.lessons, self.students, self.instructors, self.summaries, self.attendance
        )
        self.svc = ReportService(
            students=self.students,
            instructors=self.instructors,
            lessons=self.lessons,
            attendance=self.attendance,
            billings=self.billings,
            payments=self.payments,
            summaries=self.summaries,
            lesson_service=lesson_service,
            instructor_service=InstructorService(self.instructors, self.lessons),
        )

    def pay(self, amount, when, student_id=1):
        self.payments.create(
            {"billing_id": 1, "student_id": student_id, "amount": amount, "method": PaymentMethod.CASH, "payment_date": when}
        )


def test_dashboard_counts_this_weeks_lessons():
    env = Env(lessons=[make_lesson(1, on=date(2026, 3, 1)), make_lesson(2, on=date(2026, 3, 8))])

    stats = env.svc.dashboard_stats(date(2026, 3, 4))

    assert (stats.total_students, stats.total_instructors, stats.lessons_this_week, stats.pending_billings) == (2, 1, 1, 0)


def test_revenue_groups_payments_by_day():
    env = Env()
    env.pay(500, datetime(2026, 3, 1, 9, 0))
    env.pay(700, datetime(2026, 3, 1, 17, 0))
    env.pay(300, datetime(2026, 3, 3, 23, 59))
    env.pay(999, datetime(2026, 3, 4, 0, 0))

    report = env.svc.revenue(date(2026, 3, 1), date(2026, 3, 3))

    assert report.total == 1500
    assert report.days == [
        {"date": "2026-03-01", "amount": 1200, "payments": 2},
        {"date": "2026-03-03", "amount": 300, "payments": 1},
    ]


def test_attendance_report_rates():
    day = date(2026, 3, 2)
    env = Env(
        records=[
            _record(1, 1, AttendanceStatus.PRESENT, day),
            _record(2, 1, AttendanceStatus.LATE, day),
            _record(3, 1, AttendanceStatus.ABSENT, day),
            _record(4, 2, AttendanceStatus.EXCUSED, day, name="Ben Reyes"),
        ]
    )

    rows = env.svc.attendance_report(day, day)

    assert [r["student_name"] for r in rows] == ["Ana Cruz", "Ben Reyes"]
    assert rows[0]["total"] == 3 and rows[0]["attendance_rate"] == 66.7
    assert rows[1]["excused"] == 1 and rows[1]["attendance_rate"] == 0.0
    assert export_attendance_xlsx(rows)[:2] == b"PK"


def test_report_rejects_reversed_range():
    with pytest.raises(ValidationError):
        Env().svc.attendance_report(date(2026, 3, 2), date(2026, 3, 1))


def test_student_billing_summary():
    day = date(2026, 3, 2)
    env = Env(records=[_record(1, 1, AttendanceStatus.PRESENT, day), _record(2, 1, AttendanceStatus.ABSENT, day)])
    env.pay(200, datetime(2026, 3, 2, 10, 0))

    summary = env.svc.calculate_student_billing(1, day, day)

    assert (summary.sessions_attended, summary.amount_due, summary.amount_paid, summary.balance) == (1, 500.0, 200, 300.0)
    with pytest.raises(NotFoundError):
        env.svc.calculate_student_billing(99, day, day)


def test_instructor_dashboard_month_totals():
    lessons = [
        make_lesson(1, on=date(2026, 3, 2), status=LessonStatus.COMPLETED),
        make_lesson(2, on=date(2026, 3, 20), student_id=2),
        make_lesson(3, on=date(2026, 4, 1)),
    ]
    summaries = [
        SessionSummary(
            summary_id=1, lesson_id=1, instructor_id=10, summary_text="Scales", submitted_at=datetime(2026, 3, 2, 11, 0)
        )
    ]
    env = Env(lessons=lessons, records=[_record(1, 1, AttendanceStatus.PRESENT, date(2026, 3, 2))], summaries=summaries)

    dash = env.svc.instructor_dashboard(10, date(2026, 3, 10))

    assert (dash.total_lessons, dash.completed_lessons, dash.upcoming_lessons) == (2, 1, 1)
    assert (dash.total_students, dash.summaries_created, dash.attendance_marked) == (2, 1, 1)
