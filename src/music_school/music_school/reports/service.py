from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

import pandas as pd

from ..attendance.repository import AttendanceRepository
from ..billing.calculator.base import BillingCalculator
from ..billing.calculator.standard_calculator import StandardBillingCalculator
from ..billing.repository import BillingRepository, PaymentRepository
from ..calendar.navigation import week_dates
from ..core.enums import AttendanceStatus, BillingStatus, LessonStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..instructors.repository import InstructorRepository
from ..instructors.service import InstructorService
from ..lessons.conflicts import Conflict
from ..lessons.repository import LessonRepository
from ..lessons.service import LessonService
from ..session_summaries.repository import SessionSummaryRepository
from ..students.repository import StudentRepository


@dataclass(frozen=True)
class DashboardStats:
    total_students: int
    total_instructors: int
    lessons_this_week: int
    pending_billings: int


@dataclass(frozen=True)
class RevenueReport:
    start: date
    end: date
    total: float
    # [{"date": "YYYY-MM-DD", "amount": float, "payments": int}]
    days: list[dict] = field(default_factory=list)


@dataclass(frozen=True)
class StudentBillingSummary:
    student_id: int
    start: date
    end: date
    sessions_attended: int
    amount_due: float
    amount_paid: float
    balance: float


@dataclass(frozen=True)
class InstructorDashboard:
    instructor_id: int
    total_lessons: int
    completed_lessons: int
    upcoming_lessons: int
    total_students: int
    summaries_created: int
    attendance_marked: int


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("End date must be on or after start date")


class ReportService:
    """Read-only aggregates for the admin and instructor dashboards."""

    def __init__(
        self,
        *,
        students: StudentRepository,
        instructors: InstructorRepository,
        lessons: LessonRepository,
        attendance: AttendanceRepository,
        billings: BillingRepository,
        payments: PaymentRepository,
        summaries: SessionSummaryRepository,
        lesson_service: LessonService,
        instructor_service: InstructorService,
        calculator: Optional[BillingCalculator] = None,
    ):
        self._students = students
        self._instructors = instructors
        self._lessons = lessons
        self._attendance = attendance
        self._billings = billings
        self._payments = payments
        self._summaries = summaries
        self._lesson_service = lesson_service
        self._instructor_service = instructor_service
        self._calculator = calculator or StandardBillingCalculator()

    def dashboard_stats(self, today: date) -> DashboardStats:
        week = week_dates(today)
        lessons = self._lessons.list_range(start=week[0], end=week[-1])
        return DashboardStats(
            total_students=self._students.count_active(),
            total_instructors=self._instructors.count_active(),
            lessons_this_week=len(lessons),
            pending_billings=self._billings.count_by_status(BillingStatus.PENDING),
        )

    def revenue(self, start: date, end: date) -> RevenueReport:
        _check_range(start, end)
        payments = self._payments.list_range(
            start=datetime.combine(start, time.min),
            end=datetime.combine(end + timedelta(days=1), time.min),
        )

        by_day: dict[str, dict] = {}
        for p in payments:
            key = p.payment_date.date().isoformat()
            d = by_day.setdefault(key, {"date": key, "amount": 0.0, "payments": 0})
            d["amount"] += p.amount
            d["payments"] += 1

        days = sorted(by_day.values(), key=lambda d: d["date"])
        return RevenueReport(start=start, end=end, total=round(sum(d["amount"] for d in days), 2), days=days)

    def attendance_report(self, start: date, end: date, *, instructor_id: Optional[int] = None) -> list[dict]:
        """Per student totals by status and the attendance rate (present + late over all records)."""

        _check_range(start, end)
        records = self._attendance.list_range(start=start, end=end, instructor_id=instructor_id)

        summary_map: dict[int, dict[str, Any]] = {}
        for r in records:
            s = summary_map.get(r.student_id)
            if not s:
                s = {"student_id": r.student_id, "student_name": r.student_name or "", "total": 0}
                s.update({status.value: 0 for status in AttendanceStatus})
                summary_map[r.student_id] = s
            s[r.status.value] += 1
            s["total"] += 1

        rows = []
        for s in summary_map.values():
            attended = s[AttendanceStatus.PRESENT.value] + s[AttendanceStatus.LATE.value]
            s["attendance_rate"] = round(attended * 100.0 / s["total"], 1) if s["total"] else 0.0
            rows.append(s)

        rows.sort(key=lambda x: x["student_name"])
        return rows

    def calculate_student_billing(self, student_id: int, start: date, end: date) -> StudentBillingSummary:
        _check_range(start, end)
        if not self._students.get_by_id(student_id):
            raise NotFoundError("Student not found")

        records = self._attendance.list_range(start=start, end=end, student_id=student_id)
        attended = sum(1 for r in records if r.counts_as_attended)
        payments = self._payments.list_range(
            start=datetime.combine(start, time.min),
            end=datetime.combine(end + timedelta(days=1), time.min),
            student_id=student_id,
        )

        due = self._calculator.cycle_amount(attended)
        paid = round(sum(p.amount for p in payments), 2)
        return StudentBillingSummary(
            student_id=student_id,
            start=start,
            end=end,
            sessions_attended=attended,
            amount_due=due,
            amount_paid=paid,
            balance=round(due - paid, 2),
        )

    def instructor_availability(self, instructor_id: int, on_date: date):
        return self._instructor_service.availability_for(instructor_id, on_date)

    def check_lesson_conflicts(self, form: dict[str, Any], *, ignore_id: Optional[int] = None) -> list[Conflict]:
        return self._lesson_service.check_conflicts(form, ignore_id=ignore_id)

    def instructor_dashboard(self, instructor_id: int, today: date) -> InstructorDashboard:
        """Totals over the current calendar month."""

        start = today.replace(day=1)
        end = (start + timedelta(days=32)).replace(day=1) - timedelta(days=1)
        lessons = self._lessons.list_range(start=start, end=end, instructor_id=instructor_id)
        records = self._attendance.list_range(start=start, end=end, instructor_id=instructor_id)

        return InstructorDashboard(
            instructor_id=instructor_id,
            total_lessons=len(lessons),
            completed_lessons=sum(1 for l in lessons if l.status == LessonStatus.COMPLETED),
            upcoming_lessons=sum(
                1 for l in lessons if l.status == LessonStatus.SCHEDULED and l.lesson_date >= today
            ),
            total_students=len({l.student_id for l in lessons}),
            summaries_created=self._summaries.count_for_instructor(instructor_id, start=start, end=end),
            attendance_marked=len(records),
        )


def export_attendance_xlsx(rows: list[dict]) -> bytes:
    df = pd.DataFrame(
        [
            {
                "Student": r["student_name"],
                "Present": r[AttendanceStatus.PRESENT.value],
                "Late": r[AttendanceStatus.LATE.value],
                "Absent": r[AttendanceStatus.ABSENT.value],
                "Excused": r[AttendanceStatus.EXCUSED.value],
                "Total": r["total"],
                "Rate (%)": r["attendance_rate"],
            }
            for r in rows
        ],
        columns=["Student", "Present", "Late", "Absent", "Excused", "Total", "Rate (%)"],
    )
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Attendance")
    return output.getvalue()
