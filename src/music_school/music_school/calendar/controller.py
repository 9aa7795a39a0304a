from __future__ import annotations

from datetime import date

from flask import Flask

from ..common.web import arg_date, login_required, ok
from ..container import Container
from ..core.enums import CalendarView
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    svc = container.calendar_service

    @app.route("/api/calendar/<view>", methods=["GET"], endpoint="calendar_view")
    @login_required
    def calendar_view(view: str):
        try:
            cal_view = CalendarView(view)
        except ValueError:
            raise ValidationError("View must be one of year, month, week, day")
        return ok({"calendar": svc.view(cal_view, arg_date("date", date.today()))})
