from datetime import date

from src.music_school.music_school.calendar.layout import (
    LESSON_AREA_WIDTH,
    assign_lanes,
    card_style,
    lane_left,
    lane_width,
)
from src.music_school.music_school.calendar.service import CalendarService
from src.music_school.music_school.core.enums import CalendarView
from src.music_school.music_school.lessons.service import LessonService
from tests.fakes import (
    FakeAttendanceRepo,
    FakeInstructorRepo,
    FakeLessonRepo,
    FakeStudentRepo,
    FakeSummaryRepo,
    make_lesson,
)


def _lanes(lessons):
    return {p.lesson.lesson_id: (p.lane, p.total_lanes) for p in assign_lanes(lessons)}


def test_overlapping_cluster_shares_lane_count():
    lessons = [
        make_lesson(1, start="10:00", end="11:00"),
        make_lesson(2, start="10:30", end="11:30"),
        make_lesson(3, start="11:00", end="12:00"),
        make_lesson(4, start="14:00", end="15:00"),
    ]

    assert _lanes(lessons) == {1: (0, 2), 2: (1, 2), 3: (0, 2), 4: (0, 1)}


def test_single_lesson_takes_full_width():
    assert _lanes([make_lesson(1)]) == {1: (0, 1)}


def test_css_strings():
    assert LESSON_AREA_WIDTH == "calc(100% - 56px - 8px)"
    assert lane_width(1) == "calc((calc(100% - 56px - 8px) - 0px) / 1)"
    assert lane_width(2) == "calc((calc(100% - 56px - 8px) - 2px) / 2)"
    assert lane_left(1, 2) == "calc(1 * (calc((calc(100% - 56px - 8px) - 2px) / 2)) + 2px + 4px)"


def test_card_position_and_minimum_height():
    style = card_style(0, 1, "10:00", "11:00")
    assert (style.top, style.height) == (240, 120)

    assert card_style(0, 1, "10:00", "10:10").height == 30


def test_day_view_payload_carries_lanes_and_styles():
    day = date(2026, 3, 2)
    lessons = FakeLessonRepo([make_lesson(1, on=day), make_lesson(2, on=day, start="10:30", end="11:30")])
    lesson_service = LessonService(
        lessons, FakeStudentRepo(), FakeInstructorRepo(), FakeSummaryRepo(), FakeAttendanceRepo()
    )

    out = CalendarService(lesson_service).view(CalendarView.DAY, day)

    assert (out["prev"], out["next"]) == ("2026-03-01", "2026-03-03")
    assert [(l["id"], l["lane"], l["totalLanes"]) for l in out["lessons"]] == [(1, 0, 2), (2, 1, 2)]
    assert out["lessons"][1]["style"]["top"] == 300
    assert out["lessons"][0]["style"]["width"] == lane_width(2)


def test_year_view_counts_lessons_per_day():
    lessons = FakeLessonRepo([make_lesson(1), make_lesson(2, start="14:00", end="15:00")])
    lesson_service = LessonService(
        lessons, FakeStudentRepo(), FakeInstructorRepo(), FakeSummaryRepo(), FakeAttendanceRepo()
    )

    out = CalendarService(lesson_service).view(CalendarView.YEAR, date(2026, 3, 2))

    assert out["lessonCounts"] == {"2026-03-02": 2}
    assert len(out["months"]) == 12
