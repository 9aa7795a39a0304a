from __future__ import annotations

from datetime import date

from flask import Flask

from ..common.mappers import from_ui, to_ui, to_ui_list
from ..common.web import admin_required, arg_date, arg_int, current_user, json_body, login_required, ok
from ..container import Container
from .service import instructor_options

_RENAMES = {"instructor_id": "id"}
_EDITABLE = (
    "name",
    "specialties",
    "color",
    "email",
    "phone",
    "bio",
    "availability",
    "hourly_rate",
    "profile_picture_url",
)


def register(app: Flask, container: Container) -> None:
    svc = container.instructor_service

    @app.route("/api/instructors", methods=["GET"], endpoint="list_instructors")
    @login_required
    def list_instructors():
        return ok({"instructors": to_ui_list(svc.list_all(), renames=_RENAMES)})

    @app.route("/api/instructors/options", methods=["GET"], endpoint="instructor_options")
    @login_required
    def options():
        return ok({"options": instructor_options(svc.list_all(), arg_int("selected"))})

    @app.route("/api/instructors/<int:instructor_id>", methods=["GET"], endpoint="get_instructor")
    @login_required
    def get_instructor(instructor_id: int):
        return ok({"instructor": to_ui(svc.get(instructor_id), renames=_RENAMES)})

    @app.route("/api/instructors", methods=["POST"], endpoint="add_instructor")
    @admin_required
    def add_instructor():
        data = from_ui(json_body(), allowed=_EDITABLE)
        instructor_id = svc.create(actor=current_user(), data=data)
        return ok({"id": instructor_id}, 201)

    @app.route("/api/instructors/<int:instructor_id>", methods=["PUT"], endpoint="update_instructor")
    @login_required
    def update_instructor(instructor_id: int):
        data = from_ui(json_body(), allowed=_EDITABLE)
        svc.update(actor=current_user(), instructor_id=instructor_id, data=data)
        return ok()

    @app.route("/api/instructors/<int:instructor_id>/toggle-status", methods=["POST"], endpoint="toggle_instructor")
    @admin_required
    def toggle_instructor(instructor_id: int):
        status = svc.toggle_status(actor=current_user(), instructor_id=instructor_id)
        return ok({"status": status.value})

    @app.route("/api/instructors/<int:instructor_id>", methods=["DELETE"], endpoint="delete_instructor")
    @admin_required
    def delete_instructor(instructor_id: int):
        svc.delete(actor=current_user(), instructor_id=instructor_id)
        return ok()

    @app.route("/api/instructors/<int:instructor_id>/availability", methods=["GET"], endpoint="instructor_availability")
    @login_required
    def availability(instructor_id: int):
        on_date = arg_date("date", date.today())
        slots = svc.availability_for(instructor_id, on_date)
        return ok({"date": on_date.isoformat(), "slots": [to_ui(s) for s in slots]})
