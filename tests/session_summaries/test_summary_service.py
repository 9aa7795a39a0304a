from __future__ import annotations

from datetime import datetime

import pytest

from src.music_school.music_school.core.exceptions import AuthorizationError, ValidationError
from src.music_school.music_school.session_summaries.service import SessionSummaryService
from src.music_school.music_school.session_summaries.validation import (
    validate_practice_assignment,
    validate_session_summary,
)
from tests.fakes import ADMIN, INSTRUCTOR, OTHER_INSTRUCTOR, FakeLessonRepo, FakeSummaryRepo, make_lesson

NOW = datetime(2026, 3, 2, 11, 5)


def _form(**kw):
    form = {"summary_text": "Worked on C major scales", "topics_covered": ["Scales"]}
    form.update(kw)
    return form


def _svc():
    summaries = FakeSummaryRepo()
    svc = SessionSummaryService(summaries, FakeLessonRepo([make_lesson(1)]), clock=lambda: NOW)
    return svc, summaries


def test_validation_lists_every_problem():
    result = validate_session_summary(
        {
            "summary_text": "short",
            "topics_covered": [],
            "student_performance_rating": 6,
            "recommended_practice_time": -1,
            "practice_assignments": [{"title": "", "description": "x"}],
        }
    )

    assert result.errors == [
        "Summary must be at least 10 characters long",
        "At least one topic covered is required",
        "Student performance rating must be between 1 and 5",
        "Recommended practice time cannot be negative",
        "Practice assignment 1 requires a title",
    ]


def test_practice_assignment_limits():
    errors = validate_practice_assignment({"title": "t" * 101, "description": "d", "duration": -5}, 2)
    assert errors == [
        "Practice assignment 2 title cannot exceed 100 characters",
        "Practice assignment 2 duration cannot be negative",
    ]


def test_create_stamps_lesson_instructor_and_time():
    svc, repo = _svc()

    sid = svc.create(
        actor=INSTRUCTOR,
        lesson_id=1,
        form=_form(topics_covered=[" Scales ", ""], practice_assignments=[{"title": "Scales", "description": "C major", "duration": 15}]),
    )

    s = repo.rows[sid]
    assert (s.lesson_id, s.instructor_id, s.submitted_at) == (1, 10, NOW)
    assert s.topics_covered == ["Scales"]
    assert s.practice_assignments[0].duration == 15
    assert svc.has_summary(1)


def test_one_summary_per_lesson():
    svc, _ = _svc()
    svc.create(actor=ADMIN, lesson_id=1, form=_form())

    with pytest.raises(ValidationError, match="already exists"):
        svc.create(actor=ADMIN, lesson_id=1, form=_form())


def test_other_instructor_cannot_write_summary():
    svc, _ = _svc()
    with pytest.raises(AuthorizationError):
        svc.create(actor=OTHER_INSTRUCTOR, lesson_id=1, form=_form())


def test_update_validates_merged_summary():
    svc, repo = _svc()
    sid = svc.create(actor=INSTRUCTOR, lesson_id=1, form=_form())

    svc.update(actor=INSTRUCTOR, summary_id=sid, form={"homework_assigned": "Page 4"})
    assert repo.rows[sid].homework_assigned == "Page 4"

    with pytest.raises(ValidationError, match="at least 10 characters"):
        svc.update(actor=INSTRUCTOR, summary_id=sid, form={"summary_text": "tiny"})


def test_admin_review():
    svc, repo = _svc()
    sid = svc.create(actor=INSTRUCTOR, lesson_id=1, form=_form(requires_admin_review=1))

    with pytest.raises(AuthorizationError):
        svc.mark_reviewed(actor=INSTRUCTOR, summary_id=sid)
    svc.mark_reviewed(actor=ADMIN, summary_id=sid)

    assert repo.rows[sid].requires_admin_review is True
    assert (repo.rows[sid].admin_reviewed_by, repo.rows[sid].admin_reviewed_at) == (ADMIN.user_id, NOW)
