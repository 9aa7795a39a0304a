from __future__ import annotations

import random
from datetime import date, datetime, timedelta

import pytest

from src.music_school.music_school.attendance.model import AttendanceRecord
from src.music_school.music_school.core.enums import AttendanceStatus, LessonStatus, RecordStatus
from src.music_school.music_school.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from src.music_school.music_school.lessons.service import LessonService, draft_from_form, lesson_form_from_ui
from src.music_school.music_school.session_summaries.model import SessionSummary
from tests.fakes import (
    ADMIN,
    INSTRUCTOR,
    OTHER_INSTRUCTOR,
    FakeAttendanceRepo,
    FakeInstructorRepo,
    FakeLessonRepo,
    FakeStudentRepo,
    FakeSummaryRepo,
    make_instructor,
    make_lesson,
    make_student,
)

MONDAY = date(2026, 3, 2)


class Env:
    def __init__(self, lessons=(), students=None, summaries=(), attendance=(), now=datetime(2026, 3, 2, 9, 0)):
        self.lessons = FakeLessonRepo(lessons)
        self.students = FakeStudentRepo(students if students is not None else [make_student(1), make_student(2, "Ben Reyes")])
        self.instructors = FakeInstructorRepo([make_instructor(10), make_instructor(11, "Paolo")])
        self.summaries = FakeSummaryRepo(summaries)
        self.attendance = FakeAttendanceRepo(attendance)
        self.svc = LessonService(
            self.lessons,
            self.students,
            self.instructors,
            self.summaries,
            self.attendance,
            clock=lambda: now,
        )


def _form(**kw):
    form = {"student_id": 1, "instructor_id": 10, "room_id": 1, "lesson_date": "2026-03-02", "start_time": "10:00"}
    form.update(kw)
    return form


def test_draft_defaults_to_one_hour_and_validates():
    draft = draft_from_form(_form())
    assert (draft.start_time, draft.end_time, draft.lesson_date) == ("10:00", "11:00", MONDAY)

    with pytest.raises(ValidationError, match="Room must be between 1 and 4"):
        draft_from_form(_form(room_id=5))
    with pytest.raises(ValidationError, match="End time must be after start time"):
        draft_from_form(_form(end_time="09:00"))
    with pytest.raises(ValidationError, match="Invalid lesson time"):
        draft_from_form(_form(start_time="25:00"))


def test_ui_payload_uses_date_and_time_keys():
    form = lesson_form_from_ui({"studentId": 1, "date": "2026-03-02", "time": "10:00", "hack": 1})
    assert form == {"student_id": 1, "lesson_date": "2026-03-02", "start_time": "10:00"}


def test_create_with_weekly_repeats_links_to_parent():
    env = Env()

    ids = env.svc.create(actor=ADMIN, form=_form(), repeat_weekly=True, repeat_weeks=3)

    assert len(ids) == 4
    parent = env.lessons.rows[ids[0]]
    assert parent.parent_lesson_id is None
    repeats = [env.lessons.rows[i] for i in ids[1:]]
    assert [l.lesson_date for l in repeats] == [MONDAY + timedelta(weeks=w) for w in (1, 2, 3)]
    assert all(l.parent_lesson_id == ids[0] for l in repeats)


def test_repeats_skip_occupied_weeks():
    blocker = make_lesson(50, instructor_id=10, student_id=2, room_id=3, on=MONDAY + timedelta(weeks=2))
    env = Env(lessons=[blocker])

    ids = env.svc.create(actor=ADMIN, form=_form(), repeat_weekly=True, repeat_weeks=3)

    assert len(ids) == 3
    assert MONDAY + timedelta(weeks=2) not in {env.lessons.rows[i].lesson_date for i in ids if i != 50}


def test_repeat_weeks_bounds():
    env = Env()
    with pytest.raises(ValidationError, match="between 1 and 52"):
        env.svc.create(actor=ADMIN, form=_form(), repeat_weekly=True, repeat_weeks=53)
    assert env.lessons.rows == {}


def test_create_rejects_lunch_slot_and_crossing():
    env = Env()
    with pytest.raises(ValidationError, match="lunch break"):
        env.svc.create(actor=ADMIN, form=_form(start_time="12:00"))
    with pytest.raises(ValidationError, match="lunch break"):
        env.svc.create(actor=ADMIN, form=_form(start_time="11:30"))


def test_create_reports_conflict():
    env = Env(lessons=[make_lesson(1, instructor_id=10, student_id=2, room_id=2, instructor_name="Maria Santos")])

    with pytest.raises(ConflictError, match="Instructor Maria Santos is already scheduled"):
        env.svc.create(actor=ADMIN, form=_form(start_time="10:30"))


def test_inactive_student_cannot_be_scheduled():
    env = Env(students=[make_student(1, status=RecordStatus.INACTIVE)])
    with pytest.raises(ValidationError, match="not currently enrolled"):
        env.svc.create(actor=ADMIN, form=_form())


def test_instructor_schedules_only_own_lessons():
    env = Env()
    assert env.svc.create(actor=INSTRUCTOR, form=_form())
    with pytest.raises(AuthorizationError):
        env.svc.create(actor=OTHER_INSTRUCTOR, form=_form(start_time="14:00"))


def test_update_ignores_itself_and_reassigns_student_instructor():
    env = Env(lessons=[make_lesson(1)])

    env.svc.update(actor=ADMIN, lesson_id=1, form={"start_time": "10:30", "instructor_id": 11})

    lesson = env.lessons.rows[1]
    assert (lesson.start_time, lesson.end_time, lesson.instructor_id) == ("10:30", "11:30", 11)
    assert env.students.rows[1].instructor_id == 11


def test_update_new_start_keeps_duration():
    env = Env(lessons=[make_lesson(1, start="10:00", end="10:45")])

    env.svc.update(actor=ADMIN, lesson_id=1, form={"start_time": "14:00"})
    assert (env.lessons.rows[1].start_time, env.lessons.rows[1].end_time) == ("14:00", "14:45")

    env.svc.update(actor=ADMIN, lesson_id=1, form={"start_time": "15:00", "end_time": "16:30"})
    assert (env.lessons.rows[1].start_time, env.lessons.rows[1].end_time) == ("15:00", "16:30")


def test_move_keeps_duration_and_rounds_to_quarter():
    env = Env(lessons=[make_lesson(1, start="10:00", end="10:45")])

    env.svc.move(actor=ADMIN, lesson_id=1, new_date=date(2026, 3, 4), new_time="14:08")

    lesson = env.lessons.rows[1]
    assert (lesson.lesson_date, lesson.start_time, lesson.end_time) == (date(2026, 3, 4), "14:15", "15:00")


def test_copy_creates_new_lesson_with_note():
    env = Env(lessons=[make_lesson(1, notes="Scales")])

    new_id = env.svc.move(actor=ADMIN, lesson_id=1, new_date=date(2026, 3, 3), copy=True)

    assert new_id != 1
    copied = env.lessons.rows[new_id]
    assert copied.notes == "(Copied) Scales"
    assert copied.start_time == "10:00"
    assert env.lessons.rows[1].lesson_date == MONDAY


def test_move_conflict_is_prefixed():
    env = Env(lessons=[make_lesson(1), make_lesson(2, student_id=2, room_id=1, on=date(2026, 3, 3))])

    with pytest.raises(ConflictError, match="^Could not move lesson: "):
        env.svc.move(actor=ADMIN, lesson_id=1, new_date=date(2026, 3, 3))
    with pytest.raises(ConflictError, match="^Could not copy lesson: "):
        env.svc.move(actor=ADMIN, lesson_id=1, new_date=date(2026, 3, 3), copy=True)


def test_move_inactive_student_message_names_student():
    env = Env(lessons=[make_lesson(1)], students=[make_student(1, status=RecordStatus.INACTIVE)])

    with pytest.raises(ValidationError, match="Cannot schedule lessons for Ana Cruz because they are not enrolled."):
        env.svc.move(actor=ADMIN, lesson_id=1, new_date=date(2026, 3, 3))


def test_trash_restore_and_permanent_delete():
    env = Env(lessons=[make_lesson(1)])

    env.svc.soft_delete(actor=INSTRUCTOR, lesson_id=1)
    assert [l.lesson_id for l in env.svc.list_deleted()] == [1]
    assert env.svc.list_range(MONDAY, MONDAY) == []

    env.svc.restore(actor=INSTRUCTOR, lesson_id=1)
    assert env.lessons.rows[1].status == LessonStatus.SCHEDULED

    with pytest.raises(AuthorizationError):
        env.svc.delete_permanently(actor=INSTRUCTOR, lesson_id=1)
    env.svc.delete_permanently(actor=ADMIN, lesson_id=1)
    assert 1 not in env.lessons.rows


def test_restore_blocked_by_new_booking():
    env = Env(lessons=[make_lesson(1, status=LessonStatus.DELETED), make_lesson(2, student_id=2, room_id=2)])

    with pytest.raises(ConflictError, match="^Could not restore lesson: "):
        env.svc.restore(actor=ADMIN, lesson_id=1)


def test_update_status_rejects_unknown():
    env = Env(lessons=[make_lesson(1)])
    env.svc.update_status(actor=ADMIN, lesson_id=1, status="completed")
    assert env.lessons.rows[1].status == LessonStatus.COMPLETED

    with pytest.raises(ValidationError):
        env.svc.update_status(actor=ADMIN, lesson_id=1, status="done")


def test_generate_persists_and_assigns():
    env = Env()

    result = env.svc.generate(actor=ADMIN, start=MONDAY, weeks=2, rng=random.Random(3))

    assert result.created == 4 and result.skipped == 0 and result.unplaced == []
    assert {env.students.rows[1].instructor_id, env.students.rows[2].instructor_id} == {10, 11}
    with pytest.raises(AuthorizationError):
        env.svc.generate(actor=INSTRUCTOR, start=MONDAY, weeks=2)


def test_todays_lessons_flags_next_and_summary_state():
    lessons = [
        make_lesson(1, start="08:00", end="09:00"),
        make_lesson(2, start="10:00", end="11:00", student_id=2),
        make_lesson(3, start="14:00", end="15:00"),
    ]
    summaries = [SessionSummary(summary_id=1, lesson_id=1, instructor_id=10, summary_text="Worked on scales")]
    attendance = [AttendanceRecord(record_id=1, lesson_id=1, student_id=1, instructor_id=10, status=AttendanceStatus.PRESENT)]
    env = Env(lessons=lessons, summaries=summaries, attendance=attendance, now=datetime(2026, 3, 2, 9, 30))

    rows = env.svc.todays_lessons(10)

    assert [r.is_next_lesson for r in rows] == [False, True, False]
    assert rows[0].has_session_summary and rows[0].attendance_status == AttendanceStatus.PRESENT
    assert not rows[1].has_attendance


def test_check_conflicts_lists_all_kinds():
    env = Env(lessons=[make_lesson(1, instructor_id=10, room_id=2), make_lesson(2, instructor_id=11, room_id=1, student_id=2)])

    conflicts = env.svc.check_conflicts(_form())

    assert {c.kind for c in conflicts} == {"instructor", "room"}
