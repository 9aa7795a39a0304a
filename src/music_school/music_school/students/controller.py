from __future__ import annotations

from flask import Flask, Response, request

from ..common.mappers import from_ui
from ..common.web import admin_required, current_user, json_body, login_required, ok
from ..container import Container
from ..core.exceptions import ValidationError
from .bulk_import import parse_bulk_csv, template_csv
from .service import CONTACT_FIELDS, ENROLLMENT_FIELDS, student_ui


def register(app: Flask, container: Container) -> None:
    svc = container.student_service

    @app.route("/api/students", methods=["GET"], endpoint="list_students")
    @login_required
    def list_students():
        students = svc.search(request.args.get("q", ""))
        return ok({"students": [student_ui(s) for s in students]})

    @app.route("/api/students/<int:student_id>", methods=["GET"], endpoint="get_student")
    @login_required
    def get_student(student_id: int):
        return ok({"student": student_ui(svc.get(student_id))})

    @app.route("/api/students", methods=["POST"], endpoint="enroll_student")
    @admin_required
    def enroll_student():
        data = from_ui(json_body(), allowed=ENROLLMENT_FIELDS)
        student_id = svc.enroll(actor=current_user(), data=data)
        return ok({"id": student_id}, 201)

    @app.route("/api/students/bulk", methods=["POST"], endpoint="bulk_enroll_students")
    @admin_required
    def bulk_enroll_students():
        rows = json_body().get("students")
        if not isinstance(rows, list):
            raise ValidationError("students must be a list")
        ids = svc.bulk_enroll(actor=current_user(), rows=[from_ui(r, allowed=ENROLLMENT_FIELDS) for r in rows])
        return ok({"ids": ids}, 201)

    @app.route("/api/students/bulk/parse", methods=["POST"], endpoint="parse_student_csv")
    @admin_required
    def parse_student_csv():
        upload = request.files.get("file")
        if upload is None:
            raise ValidationError("Please select a CSV file")
        if not (upload.filename or "").lower().endswith(".csv"):
            raise ValidationError("Please select a CSV file")

        result = parse_bulk_csv(upload.read())
        rows = [{**r, "birthdate": r["birthdate"].isoformat() if r["birthdate"] else None} for r in result.rows]
        return ok({"rows": rows, "errors": result.errors})

    @app.route("/api/students/bulk/template", methods=["GET"], endpoint="student_csv_template")
    @admin_required
    def student_csv_template():
        return Response(
            template_csv(),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=bulk_student_upload_template.csv"},
        )

    @app.route("/api/students/<int:student_id>", methods=["PUT"], endpoint="update_student")
    @admin_required
    def update_student(student_id: int):
        data = from_ui(json_body(), allowed=ENROLLMENT_FIELDS)
        svc.update(actor=current_user(), student_id=student_id, data=data)
        return ok()

    @app.route("/api/students/<int:student_id>/contact", methods=["PUT"], endpoint="update_student_contact")
    @admin_required
    def update_student_contact(student_id: int):
        data = from_ui(json_body(), allowed=CONTACT_FIELDS)
        svc.update_contact(actor=current_user(), student_id=student_id, data=data)
        return ok()

    @app.route("/api/students/<int:student_id>/toggle-status", methods=["POST"], endpoint="toggle_student")
    @admin_required
    def toggle_student(student_id: int):
        status = svc.toggle_status(actor=current_user(), student_id=student_id)
        return ok({"status": status.value})

    @app.route("/api/students/<int:student_id>/sessions", methods=["PUT"], endpoint="update_student_sessions")
    @admin_required
    def update_student_sessions(student_id: int):
        data = json_body()
        try:
            unpaid = int(data.get("unpaidCount", 0))
        except (TypeError, ValueError):
            raise ValidationError("unpaidCount must be a number")
        attended = svc.update_sessions(actor=current_user(), student_id=student_id, unpaid_count=unpaid)
        return ok({"sessionsAttended": attended})

    @app.route("/api/students/<int:student_id>/linked", methods=["GET"], endpoint="linked_students")
    @login_required
    def linked_students(student_id: int):
        return ok({"students": [student_ui(s) for s in svc.linked_enrollments(student_id)]})

    @app.route("/api/students/<int:student_id>", methods=["DELETE"], endpoint="delete_student")
    @admin_required
    def delete_student(student_id: int):
        svc.delete(actor=current_user(), student_id=student_id)
        return ok()
