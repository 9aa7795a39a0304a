from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any

from ..common.mappers import to_ui
from ..core.enums import CalendarView
from ..lessons.model import LESSON_UI_RENAMES
from ..lessons.service import LessonService
from .layout import assign_lanes, card_style
from .navigation import month_grid, navigate, view_range, week_dates, year_months


class CalendarService:
    """Builds the payload of each calendar view from the lessons in its date range."""

    def __init__(self, lessons: LessonService):
        self._lessons = lessons

    def view(self, view: CalendarView, current: date) -> dict[str, Any]:
        start, end = view_range(current, view)
        lessons = self._lessons.list_range(start, end)
        out: dict[str, Any] = {
            "view": view.value,
            "date": current.isoformat(),
            "prev": navigate(current, view, "prev").isoformat(),
            "next": navigate(current, view, "next").isoformat(),
            "start": start.isoformat(),
            "end": end.isoformat(),
        }

        if view == CalendarView.YEAR:
            per_day = Counter(l.lesson_date.isoformat() for l in lessons)
            out["months"] = [m.isoformat() for m in year_months(current)]
            out["lessonCounts"] = dict(per_day)
        elif view == CalendarView.MONTH:
            out["weeks"] = [[d.isoformat() for d in week] for week in month_grid(current)]
            out["lessons"] = [to_ui(l, renames=LESSON_UI_RENAMES) for l in lessons]
        elif view == CalendarView.WEEK:
            out["days"] = [d.isoformat() for d in week_dates(current)]
            out["lessons"] = [to_ui(l, renames=LESSON_UI_RENAMES) for l in lessons]
        else:
            out["lessons"] = [
                {
                    **to_ui(p.lesson, renames=LESSON_UI_RENAMES),
                    "lane": p.lane,
                    "totalLanes": p.total_lanes,
                    "style": to_ui(card_style(p.lane, p.total_lanes, p.lesson.start_time, p.lesson.end_time)),
                }
                for p in assign_lanes(lessons)
            ]
        return out
