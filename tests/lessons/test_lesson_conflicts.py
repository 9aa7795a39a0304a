from datetime import date

from src.music_school.music_school.core.enums import LessonStatus
from src.music_school.music_school.lessons.conflicts import find_conflict, list_conflicts
from src.music_school.music_school.lessons.model import LessonDraft
from tests.fakes import make_lesson

DAY = date(2026, 3, 2)


def _draft(**kw):
    data = dict(student_id=2, instructor_id=20, room_id=2, lesson_date=DAY, start_time="10:30", end_time="11:30")
    data.update(kw)
    return LessonDraft(**data)


def test_instructor_conflict_names_the_instructor():
    existing = [make_lesson(1, instructor_id=20, instructor_name="Maria Santos")]
    assert find_conflict(_draft(), existing) == "Instructor Maria Santos is already scheduled during this time."


def test_room_conflict():
    existing = [make_lesson(1, room_id=2)]
    assert find_conflict(_draft(), existing) == "Room 2 is already booked during this time."


def test_student_conflict():
    existing = [make_lesson(1, student_id=2, student_name="Ben Reyes")]
    assert find_conflict(_draft(), existing) == "Student Ben Reyes already has a lesson during this time."


def test_no_conflict_for_touching_other_day_deleted_or_ignored():
    touching = make_lesson(1, instructor_id=20, start="11:30", end="12:30")
    other_day = make_lesson(2, instructor_id=20, on=date(2026, 3, 3))
    trashed = make_lesson(3, instructor_id=20, status=LessonStatus.DELETED)
    itself = make_lesson(4, instructor_id=20)

    assert find_conflict(_draft(), [touching, other_day, trashed, itself], ignore_id=4) is None


def test_list_conflicts_reports_each_lesson_once():
    existing = [make_lesson(1, instructor_id=20, room_id=2), make_lesson(2, room_id=2, start="11:00", end="12:00")]

    conflicts = list_conflicts(_draft(), existing)

    assert [(c.lesson_id, c.kind) for c in conflicts] == [(1, "instructor"), (2, "room")]
