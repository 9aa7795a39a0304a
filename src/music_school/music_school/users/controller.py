from __future__ import annotations

from datetime import timedelta

from flask import Flask, session

from ..common.mappers import to_ui_list
from ..common.web import admin_required, body_int, current_user, json_body, login_required, ok, store_user
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError


def _account_ui(users) -> list[dict]:
    return [{k: v for k, v in u.items() if k != "passwordHash"} for u in to_ui_list(users, renames={"user_id": "id"})]


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.authenticate(data.get("email", ""), data.get("password", ""))

        session.clear()
        session.permanent = bool(data.get("rememberMe"))
        app.permanent_session_lifetime = timedelta(days=7)
        store_user(s_user)

        return ok({"user": _me(s_user)})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return ok()

    @app.route("/api/auth/me", endpoint="me")
    @login_required
    def me():
        return ok({"user": _me(current_user())})

    @app.route("/api/admin/users", methods=["GET"], endpoint="admin_users")
    @admin_required
    def admin_users():
        return ok({"users": _account_ui(container.user_service.list_accounts())})

    @app.route("/api/admin/users", methods=["POST"], endpoint="add_user")
    @admin_required
    def add_user():
        data = json_body()
        try:
            role = Role(data.get("role", Role.INSTRUCTOR.value))
        except ValueError:
            raise ValidationError("Invalid account role")

        user_id = container.user_service.create_account(
            actor=current_user(),
            full_name=data.get("fullName", ""),
            email=data.get("email", ""),
            password=data.get("password", ""),
            role=role,
            instructor_id=body_int(data, "instructorId", required=False),
        )
        return ok({"id": user_id}, 201)

    @app.route("/api/admin/users/<int:user_id>/active", methods=["POST"], endpoint="set_user_active")
    @admin_required
    def set_user_active(user_id: int):
        data = json_body()
        container.user_service.set_active(actor=current_user(), user_id=user_id, is_active=bool(data.get("active")))
        return ok()


def _me(user) -> dict:
    return {
        "id": user.user_id,
        "name": user.full_name,
        "role": user.role.value,
        "instructorId": user.instructor_id,
    }
