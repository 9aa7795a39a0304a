from __future__ import annotations

from datetime import date, timedelta

from flask import Flask

from ..common.mappers import from_ui, to_ui_list
from ..common.web import arg_date, current_user, json_body, login_required, ok
from ..container import Container
from ..core.exceptions import ValidationError
from .service import ATTENDANCE_FIELDS

_RENAMES = {"record_id": "id"}
_BULK_FIELDS = ATTENDANCE_FIELDS + ("lesson_id", "student_id")


def register(app: Flask, container: Container) -> None:
    svc = container.attendance_service

    @app.route("/api/lessons/<int:lesson_id>/attendance", methods=["GET"], endpoint="list_lesson_attendance")
    @login_required
    def list_lesson_attendance(lesson_id: int):
        return ok({"records": to_ui_list(svc.list_for_lesson(lesson_id), renames=_RENAMES)})

    @app.route("/api/lessons/<int:lesson_id>/attendance", methods=["POST"], endpoint="mark_attendance")
    @login_required
    def mark_attendance(lesson_id: int):
        form = from_ui(json_body(), allowed=ATTENDANCE_FIELDS + ("student_id",))
        record_id = svc.mark(actor=current_user(), lesson_id=lesson_id, form=form)
        return ok({"id": record_id}, 201)

    @app.route("/api/attendance/bulk", methods=["POST"], endpoint="bulk_mark_attendance")
    @login_required
    def bulk_mark_attendance():
        records = json_body().get("records")
        if not isinstance(records, list):
            raise ValidationError("records must be a list")
        ids = svc.bulk_mark(actor=current_user(), records=[from_ui(r, allowed=_BULK_FIELDS) for r in records])
        return ok({"ids": ids}, 201)

    @app.route("/api/attendance/<int:record_id>", methods=["PUT"], endpoint="update_attendance")
    @login_required
    def update_attendance(record_id: int):
        form = from_ui(json_body(), allowed=ATTENDANCE_FIELDS)
        svc.update(actor=current_user(), record_id=record_id, form=form)
        return ok()

    @app.route("/api/attendance/<int:record_id>", methods=["DELETE"], endpoint="delete_attendance")
    @login_required
    def delete_attendance(record_id: int):
        svc.delete(actor=current_user(), record_id=record_id)
        return ok()

    @app.route("/api/students/<int:student_id>/attendance", methods=["GET"], endpoint="student_attendance")
    @login_required
    def student_attendance(student_id: int):
        end = arg_date("end", date.today())
        start = arg_date("start", end - timedelta(days=30))
        rows = svc.list_for_student(student_id, start=start, end=end)
        return ok({"records": to_ui_list(rows, renames=_RENAMES)})
