"""Date arithmetic for the year / month / week / day calendar views.

Weeks start on Sunday.
"""

from __future__ import annotations

import calendar as _cal
from datetime import date, timedelta

from ..core.enums import CalendarView
from ..core.exceptions import ValidationError

_SUNDAY_FIRST = _cal.Calendar(firstweekday=6)


def add_months(current: date, months: int) -> date:
    """Shift by whole months; the day is clamped to the target month length (Jan 31 + 1 -> Feb 28/29)."""

    index = current.year * 12 + (current.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(current.day, _cal.monthrange(year, month)[1])
    return date(year, month, day)


def navigate(current: date, view: CalendarView, direction: str) -> date:
    if direction not in ("prev", "next"):
        raise ValidationError("Direction must be 'prev' or 'next'")
    step = 1 if direction == "next" else -1

    if view == CalendarView.YEAR:
        return add_months(current, 12 * step)
    if view == CalendarView.MONTH:
        return add_months(current, step)
    if view == CalendarView.WEEK:
        return current + timedelta(days=7 * step)
    return current + timedelta(days=step)


def week_start(current: date) -> date:
    # date.weekday(): Monday=0 .. Sunday=6
    return current - timedelta(days=(current.weekday() + 1) % 7)


def week_dates(current: date) -> list[date]:
    start = week_start(current)
    return [start + timedelta(days=i) for i in range(7)]


def month_grid(current: date) -> list[list[date]]:
    """Sunday-started weeks covering the whole month, padded with days of the neighbouring months."""

    return _SUNDAY_FIRST.monthdatescalendar(current.year, current.month)


def year_months(current: date) -> list[date]:
    return [date(current.year, m, 1) for m in range(1, 13)]


def view_range(current: date, view: CalendarView) -> tuple[date, date]:
    """First and last date displayed by `view`."""

    if view == CalendarView.YEAR:
        return date(current.year, 1, 1), date(current.year, 12, 31)
    if view == CalendarView.MONTH:
        grid = month_grid(current)
        return grid[0][0], grid[-1][-1]
    if view == CalendarView.WEEK:
        days = week_dates(current)
        return days[0], days[-1]
    return current, current
