from __future__ import annotations

import io
from datetime import date, timedelta

from flask import Flask, send_file

from ..common.mappers import snake_to_camel, to_ui, to_ui_list
from ..common.web import admin_required, arg_date, body_int, current_user, json_body, login_required, ok
from ..container import Container
from ..core.exceptions import AuthorizationError
from ..lessons.service import lesson_form_from_ui
from .service import export_attendance_xlsx


def _month_window() -> tuple[date, date]:
    end = arg_date("end", date.today())
    return arg_date("start", end - timedelta(days=30)), end


def _camel_keys(row: dict) -> dict:
    return {snake_to_camel(k): v for k, v in row.items()}


def register(app: Flask, container: Container) -> None:
    svc = container.report_service

    @app.route("/api/reports/dashboard", methods=["GET"], endpoint="dashboard_stats")
    @admin_required
    def dashboard_stats():
        return ok({"stats": to_ui(svc.dashboard_stats(arg_date("today", date.today())))})

    @app.route("/api/reports/revenue", methods=["GET"], endpoint="revenue_report")
    @admin_required
    def revenue_report():
        start, end = _month_window()
        return ok({"revenue": to_ui(svc.revenue(start, end))})

    @app.route("/api/reports/attendance", methods=["GET"], endpoint="attendance_report")
    @login_required
    def attendance_report():
        user = current_user()
        start, end = _month_window()
        instructor_id = None if user.is_admin else user.instructor_id
        rows = svc.attendance_report(start, end, instructor_id=instructor_id)
        return ok({"rows": [_camel_keys(r) for r in rows]})

    @app.route("/api/reports/attendance/export", methods=["GET"], endpoint="export_attendance_report")
    @admin_required
    def export_attendance_report():
        start, end = _month_window()
        output = io.BytesIO(export_attendance_xlsx(svc.attendance_report(start, end)))
        return send_file(
            output,
            download_name=f"attendance_{start.isoformat()}_{end.isoformat()}.xlsx",
            as_attachment=True,
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )

    @app.route("/api/reports/students/<int:student_id>/billing", methods=["GET"], endpoint="student_billing_report")
    @admin_required
    def student_billing_report(student_id: int):
        start, end = _month_window()
        return ok({"billing": to_ui(svc.calculate_student_billing(student_id, start, end))})

    @app.route("/api/reports/instructors/<int:instructor_id>/availability", methods=["GET"], endpoint="instructor_free_slots")
    @login_required
    def instructor_free_slots(instructor_id: int):
        slots = svc.instructor_availability(instructor_id, arg_date("date", date.today()))
        return ok({"slots": to_ui_list(slots)})

    @app.route("/api/reports/lesson-conflicts", methods=["POST"], endpoint="lesson_conflict_report")
    @login_required
    def lesson_conflict_report():
        data = json_body()
        form = lesson_form_from_ui(data)
        conflicts = svc.check_lesson_conflicts(form, ignore_id=body_int(data, "ignoreId", required=False))
        return ok({"conflicts": to_ui_list(conflicts), "hasConflict": bool(conflicts)})

    @app.route("/api/reports/instructors/<int:instructor_id>/dashboard", methods=["GET"], endpoint="instructor_dashboard")
    @login_required
    def instructor_dashboard(instructor_id: int):
        if not current_user().owns_instructor(instructor_id):
            raise AuthorizationError("You can only view your own dashboard")
        today = arg_date("today", date.today())
        return ok({"dashboard": to_ui(svc.instructor_dashboard(instructor_id, today))})
