from __future__ import annotations

from datetime import date, timedelta

from flask import Flask

from ..common.datetime_utils import parse_iso_date
from ..common.mappers import to_ui, to_ui_list
from ..common.web import admin_required, arg_date, arg_int, body_int, current_user, json_body, login_required, ok
from ..container import Container
from ..core.constants import DEFAULT_GENERATED_WEEKS
from ..core.exceptions import AuthorizationError
from .model import LESSON_UI_RENAMES, InstructorLessonRow
from .service import lesson_form_from_ui


def _row_ui(row: InstructorLessonRow) -> dict:
    out = to_ui(row.lesson, renames=LESSON_UI_RENAMES)
    out.update(
        hasSessionSummary=row.has_session_summary,
        hasAttendance=row.has_attendance,
        attendanceStatus=row.attendance_status.value if row.attendance_status else None,
        isNextLesson=row.is_next_lesson,
    )
    return out


def _week_window() -> tuple[date, date]:
    start = arg_date("start", date.today())
    return start, arg_date("end", start + timedelta(days=6))


def register(app: Flask, container: Container) -> None:
    svc = container.lesson_service

    @app.route("/api/lessons", methods=["GET"], endpoint="list_lessons")
    @login_required
    def list_lessons():
        start, end = _week_window()
        instructor_id = arg_int("instructorId")
        student_id = arg_int("studentId")
        if instructor_id:
            rows = svc.list_for_instructor(instructor_id, start=start, end=end)
        elif student_id:
            rows = svc.list_for_student(student_id, start=start, end=end)
        else:
            rows = svc.list_range(start, end)
        return ok({"lessons": to_ui_list(rows, renames=LESSON_UI_RENAMES)})

    @app.route("/api/lessons/trash", methods=["GET"], endpoint="list_deleted_lessons")
    @login_required
    def list_deleted_lessons():
        return ok({"lessons": to_ui_list(svc.list_deleted(), renames=LESSON_UI_RENAMES)})

    @app.route("/api/lessons/<int:lesson_id>", methods=["GET"], endpoint="get_lesson")
    @login_required
    def get_lesson(lesson_id: int):
        return ok({"lesson": to_ui(svc.get(lesson_id), renames=LESSON_UI_RENAMES)})

    @app.route("/api/lessons", methods=["POST"], endpoint="create_lesson")
    @login_required
    def create_lesson():
        data = json_body()
        ids = svc.create(
            actor=current_user(),
            form=lesson_form_from_ui(data),
            repeat_weekly=bool(data.get("repeatWeekly")),
            repeat_weeks=body_int(data, "repeatWeeks", required=False) or 0,
        )
        return ok({"id": ids[0], "ids": ids}, 201)

    @app.route("/api/lessons/<int:lesson_id>", methods=["PUT"], endpoint="update_lesson")
    @login_required
    def update_lesson(lesson_id: int):
        data = json_body()
        created = svc.update(
            actor=current_user(),
            lesson_id=lesson_id,
            form=lesson_form_from_ui(data),
            repeat_weekly=bool(data.get("repeatWeekly")),
            repeat_weeks=body_int(data, "repeatWeeks", required=False) or 0,
        )
        return ok({"createdIds": created})

    @app.route("/api/lessons/<int:lesson_id>/move", methods=["POST"], endpoint="move_lesson")
    @login_required
    def move_lesson(lesson_id: int):
        data = json_body()
        new_id = svc.move(
            actor=current_user(),
            lesson_id=lesson_id,
            new_date=parse_iso_date(data.get("date") or ""),
            new_time=data.get("time") or None,
            copy=bool(data.get("copy")),
        )
        return ok({"id": new_id})

    @app.route("/api/lessons/<int:lesson_id>/status", methods=["PUT"], endpoint="update_lesson_status")
    @login_required
    def update_lesson_status(lesson_id: int):
        svc.update_status(actor=current_user(), lesson_id=lesson_id, status=json_body().get("status"))
        return ok()

    @app.route("/api/lessons/<int:lesson_id>", methods=["DELETE"], endpoint="trash_lesson")
    @login_required
    def trash_lesson(lesson_id: int):
        svc.soft_delete(actor=current_user(), lesson_id=lesson_id)
        return ok()

    @app.route("/api/lessons/<int:lesson_id>/restore", methods=["POST"], endpoint="restore_lesson")
    @login_required
    def restore_lesson(lesson_id: int):
        svc.restore(actor=current_user(), lesson_id=lesson_id)
        return ok()

    @app.route("/api/lessons/<int:lesson_id>/permanent", methods=["DELETE"], endpoint="purge_lesson")
    @admin_required
    def purge_lesson(lesson_id: int):
        svc.delete_permanently(actor=current_user(), lesson_id=lesson_id)
        return ok()

    @app.route("/api/lessons/conflicts", methods=["POST"], endpoint="check_lesson_conflicts")
    @login_required
    def check_lesson_conflicts():
        data = json_body()
        conflicts = svc.check_conflicts(lesson_form_from_ui(data), ignore_id=body_int(data, "ignoreId", required=False))
        return ok({"conflicts": to_ui_list(conflicts), "hasConflict": bool(conflicts)})

    @app.route("/api/lessons/generate", methods=["POST"], endpoint="generate_lessons")
    @admin_required
    def generate_lessons():
        data = json_body()
        start = parse_iso_date(data["startDate"]) if data.get("startDate") else date.today()
        result = svc.generate(
            actor=current_user(),
            start=start,
            weeks=body_int(data, "weeks", required=False) or DEFAULT_GENERATED_WEEKS,
        )
        return ok({"result": to_ui(result)}, 201)

    @app.route("/api/instructors/<int:instructor_id>/schedule", methods=["GET"], endpoint="instructor_schedule")
    @login_required
    def instructor_schedule(instructor_id: int):
        if not current_user().owns_instructor(instructor_id):
            raise AuthorizationError("You can only view your own schedule")
        start, end = _week_window()
        rows = svc.instructor_schedule(instructor_id, start=start, end=end)
        return ok({"lessons": [_row_ui(r) for r in rows]})

    @app.route("/api/instructors/<int:instructor_id>/today", methods=["GET"], endpoint="instructor_today")
    @login_required
    def instructor_today(instructor_id: int):
        if not current_user().owns_instructor(instructor_id):
            raise AuthorizationError("You can only view your own schedule")
        return ok({"lessons": [_row_ui(r) for r in svc.todays_lessons(instructor_id)]})
