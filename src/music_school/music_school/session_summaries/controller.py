from __future__ import annotations

from flask import Flask

from ..common.mappers import from_ui, to_ui, to_ui_list
from ..common.web import admin_required, arg_int, current_user, json_body, login_required, ok
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from .service import SUMMARY_FIELDS

_RENAMES = {"summary_id": "id"}


def register(app: Flask, container: Container) -> None:
    svc = container.summary_service

    @app.route("/api/session-summaries", methods=["GET"], endpoint="list_summaries")
    @login_required
    def list_summaries():
        user = current_user()
        limit = arg_int("limit", DEFAULT_HISTORY_LIMIT)
        student_id = arg_int("studentId")
        if student_id:
            rows = svc.list_for_student(student_id, limit=limit)
        elif user.is_admin:
            rows = svc.list_all()
        else:
            rows = svc.list_for_instructor(user.instructor_id, limit=limit)
        return ok({"summaries": to_ui_list(rows, renames=_RENAMES)})

    @app.route("/api/lessons/<int:lesson_id>/summary", methods=["GET"], endpoint="get_lesson_summary")
    @login_required
    def get_lesson_summary(lesson_id: int):
        summary = svc.get_by_lesson(lesson_id)
        return ok({"summary": to_ui(summary, renames=_RENAMES) if summary else None})

    @app.route("/api/lessons/<int:lesson_id>/summary", methods=["POST"], endpoint="create_lesson_summary")
    @login_required
    def create_lesson_summary(lesson_id: int):
        form = from_ui(json_body(), allowed=SUMMARY_FIELDS)
        summary_id = svc.create(actor=current_user(), lesson_id=lesson_id, form=form)
        return ok({"id": summary_id}, 201)

    @app.route("/api/session-summaries/<int:summary_id>", methods=["PUT"], endpoint="update_summary")
    @login_required
    def update_summary(summary_id: int):
        form = from_ui(json_body(), allowed=SUMMARY_FIELDS)
        svc.update(actor=current_user(), summary_id=summary_id, form=form)
        return ok()

    @app.route("/api/session-summaries/<int:summary_id>", methods=["DELETE"], endpoint="delete_summary")
    @login_required
    def delete_summary(summary_id: int):
        svc.delete(actor=current_user(), summary_id=summary_id)
        return ok()

    @app.route("/api/session-summaries/<int:summary_id>/review", methods=["POST"], endpoint="review_summary")
    @admin_required
    def review_summary(summary_id: int):
        svc.mark_reviewed(actor=current_user(), summary_id=summary_id)
        return ok()
