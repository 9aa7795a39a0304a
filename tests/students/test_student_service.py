from __future__ import annotations

from datetime import date

import pytest

from src.music_school.music_school.core.enums import RecordStatus
from src.music_school.music_school.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from src.music_school.music_school.students.model import avatar_url, format_student_number, parse_student_number
from src.music_school.music_school.students.service import StudentService, clean_student_data, student_ui
from tests.fakes import ADMIN, INSTRUCTOR, FakeStudentRepo, make_student


def _svc(*students):
    repo = FakeStudentRepo(students)
    return StudentService(repo), repo


def test_enroll_assigns_next_student_number_and_zero_counters():
    svc, repo = _svc(make_student(1, student_id_number="STU-0007"))

    sid = svc.enroll(actor=ADMIN, data={"name": "Ben Reyes", "instrument": "Guitar", "email": "BEN@mail.com"})

    s = repo.rows[sid]
    assert s.student_id_number == "STU-0008"
    assert s.email == "ben@mail.com"
    assert (s.sessions_attended, s.sessions_billed, s.credit_balance) == (0, 0, 0)
    assert s.status == RecordStatus.ACTIVE


def test_enroll_requires_admin():
    svc, _ = _svc()
    with pytest.raises(AuthorizationError):
        svc.enroll(actor=INSTRUCTOR, data={"name": "Ben", "instrument": "Guitar"})


def test_enroll_collects_every_form_error():
    with pytest.raises(ValidationError) as e:
        clean_student_data({"email": "bad", "gender": "Other"})

    message = str(e.value)
    assert "Student name is required" in message
    assert "Instrument is required" in message
    assert "Email is not a valid email address" in message
    assert 'Gender must be "Male" or "Female"' in message


def test_birthdate_sets_age_and_rejects_future():
    out = clean_student_data({"name": "A", "instrument": "Piano", "birthdate": "2010-01-01"})
    assert out["birthdate"] == date(2010, 1, 1)
    assert out["age"] >= 16

    with pytest.raises(ValidationError, match="cannot be in the future"):
        clean_student_data({"name": "A", "instrument": "Piano", "birthdate": "2999-01-01"})


def test_partial_update_only_checks_given_fields():
    svc, repo = _svc(make_student(1))

    svc.update(actor=ADMIN, student_id=1, data={"level": "Grade 2", "unknown": "x"})

    assert repo.rows[1].level == "Grade 2"


def test_update_contact_ignores_non_contact_fields():
    svc, repo = _svc(make_student(1))

    svc.update_contact(actor=ADMIN, student_id=1, data={"contact_number": "09171234567", "name": "Changed"})

    assert repo.rows[1].contact_number == "09171234567"
    assert repo.rows[1].name == "Ana Cruz"


def test_bulk_enroll_validates_all_rows_before_inserting():
    svc, repo = _svc()

    with pytest.raises(ValidationError, match="Row 2"):
        svc.bulk_enroll(
            actor=ADMIN,
            rows=[{"name": "A", "instrument": "Piano"}, {"name": "", "instrument": "Piano"}],
        )
    assert repo.rows == {}


def test_toggle_status_flips():
    svc, repo = _svc(make_student(1))

    assert svc.toggle_status(actor=ADMIN, student_id=1) == RecordStatus.INACTIVE
    assert svc.toggle_status(actor=ADMIN, student_id=1) == RecordStatus.ACTIVE


def test_update_sessions_sets_attended_from_billed_plus_unpaid():
    svc, repo = _svc(make_student(1, sessions_attended=9, sessions_billed=8))

    assert svc.update_sessions(actor=ADMIN, student_id=1, unpaid_count=3) == 11
    assert repo.rows[1].sessions_attended == 11

    with pytest.raises(ValidationError):
        svc.update_sessions(actor=ADMIN, student_id=1, unpaid_count=-1)


def test_delete_missing_student():
    svc, _ = _svc()
    with pytest.raises(NotFoundError):
        svc.delete(actor=ADMIN, student_id=99)


def test_linked_enrollments_follow_parent():
    svc, _ = _svc(
        make_student(1, "Ana Cruz"),
        make_student(2, "Ana Cruz", instrument="Voice", parent_student_id=1),
        make_student(3, "Ana Cruz", instrument="Violin", parent_student_id=1),
        make_student(4, "Other"),
    )

    assert {s.student_id for s in svc.linked_enrollments(2)} == {1, 3}


def test_cycle_progress_shows_full_unpaid_cycle():
    assert make_student(1, sessions_attended=4, sessions_billed=0).cycle_progress == 4
    assert make_student(1, sessions_attended=6, sessions_billed=4).cycle_progress == 2
    assert make_student(1, sessions_attended=4, sessions_billed=4).cycle_progress == 0


def test_student_numbers_and_avatar():
    assert format_student_number(12) == "STU-0012"
    assert parse_student_number("STU-0012") == 12
    assert parse_student_number("legacy") == 0
    assert avatar_url("Ana Cruz").endswith("seed=anacruz")


def test_student_ui_adds_computed_fields():
    out = student_ui(make_student(1, sessions_attended=5, sessions_billed=4))
    assert out["id"] == 1
    assert out["unpaidSessions"] == 1
    assert out["cycleProgress"] == 1
