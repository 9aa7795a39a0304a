from __future__ import annotations

from datetime import date

import pytest

from src.music_school.music_school.core.constants import INSTRUCTOR_COLORS
from src.music_school.music_school.core.enums import RecordStatus
from src.music_school.music_school.core.exceptions import AuthorizationError, ValidationError
from src.music_school.music_school.instructors.model import TimeSlot
from src.music_school.music_school.instructors.service import (
    InstructorService,
    free_slots,
    instructor_options,
    next_color,
)
from tests.fakes import ADMIN, INSTRUCTOR, OTHER_INSTRUCTOR, FakeInstructorRepo, FakeLessonRepo, make_instructor, make_lesson


def test_free_slots_subtracts_bookings():
    declared = [TimeSlot("09:00", "12:00"), TimeSlot("13:00", "17:00")]
    booked = [("10:00", "11:00"), ("13:00", "14:30")]

    assert free_slots(declared, booked) == [
        TimeSlot("09:00", "10:00"),
        TimeSlot("11:00", "12:00"),
        TimeSlot("14:30", "17:00"),
    ]


def test_next_color_skips_used_and_cycles():
    assert next_color([INSTRUCTOR_COLORS[0]]) == INSTRUCTOR_COLORS[1]
    assert next_color(list(INSTRUCTOR_COLORS)) == INSTRUCTOR_COLORS[0]


def test_create_picks_color_and_cleans_availability():
    repo = FakeInstructorRepo([make_instructor(10, color=INSTRUCTOR_COLORS[0])])
    svc = InstructorService(repo, FakeLessonRepo())

    iid = svc.create(
        actor=ADMIN,
        data={"name": " Paolo ", "specialties": ["Guitar", " "], "availability": {"Monday": [{"start": "9:00", "end": "12:00"}]}},
    )

    created = repo.rows[iid]
    assert created.name == "Paolo"
    assert created.color == INSTRUCTOR_COLORS[1]
    assert created.specialties == ["Guitar"]
    assert created.availability["Monday"] == [TimeSlot("09:00", "12:00")]


@pytest.mark.parametrize(
    "availability, message",
    [
        ({"Someday": []}, "Unknown weekday"),
        ({"Monday": [{"start": "9", "end": "10:00"}]}, "Invalid time slot"),
        ({"Monday": [{"start": "10:00", "end": "09:00"}]}, "end must be after start"),
    ],
)
def test_invalid_availability(availability, message):
    svc = InstructorService(FakeInstructorRepo(), FakeLessonRepo())
    with pytest.raises(ValidationError, match=message):
        svc.create(actor=ADMIN, data={"name": "X", "availability": availability})


def test_instructor_can_edit_only_own_profile():
    repo = FakeInstructorRepo([make_instructor(10), make_instructor(11, "Paolo")])
    svc = InstructorService(repo, FakeLessonRepo())

    svc.update(actor=INSTRUCTOR, instructor_id=10, data={"bio": "Concert pianist"})
    assert repo.rows[10].bio == "Concert pianist"

    with pytest.raises(AuthorizationError):
        svc.update(actor=OTHER_INSTRUCTOR, instructor_id=10, data={"bio": "x"})


def test_negative_hourly_rate_rejected():
    svc = InstructorService(FakeInstructorRepo([make_instructor(10)]), FakeLessonRepo())
    with pytest.raises(ValidationError, match="cannot be negative"):
        svc.update(actor=ADMIN, instructor_id=10, data={"hourly_rate": -5})


def test_availability_for_day_removes_booked_lessons():
    monday = date(2026, 3, 2)
    instructor = make_instructor(10, availability={"Monday": [TimeSlot("09:00", "12:00")]})
    lessons = FakeLessonRepo([make_lesson(1, on=monday, start="10:00", end="11:00")])
    svc = InstructorService(FakeInstructorRepo([instructor]), lessons)

    assert svc.availability_for(10, monday) == [TimeSlot("09:00", "10:00"), TimeSlot("11:00", "12:00")]
    assert svc.availability_for(10, date(2026, 3, 3)) == []


def test_options_keep_selected_inactive_instructor():
    active = make_instructor(10)
    inactive = make_instructor(11, "Paolo", status=RecordStatus.INACTIVE)

    assert [o["value"] for o in instructor_options([active, inactive])] == [10]
    assert [o["value"] for o in instructor_options([active, inactive], selected=11)] == [10, 11]
