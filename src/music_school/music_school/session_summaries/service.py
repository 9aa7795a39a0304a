from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Optional

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..lessons.repository import LessonRepository
from ..users.model import SessionUser
from .model import SessionSummary
from .repository import SessionSummaryRepository
from .validation import validate_session_summary

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = (
    "summary_text",
    "topics_covered",
    "homework_assigned",
    "student_progress",
    "next_lesson_focus",
    "achievements",
    "student_performance_rating",
    "lesson_difficulty_rating",
    "practice_assignments",
    "recommended_practice_time",
    "requires_admin_review",
)


def _form_of(summary: SessionSummary) -> dict[str, Any]:
    data = {k: getattr(summary, k) for k in SUMMARY_FIELDS}
    data["practice_assignments"] = [asdict(a) for a in summary.practice_assignments]
    return data


def _normalize(form: dict[str, Any]) -> dict[str, Any]:
    out = {k: v for k, v in form.items() if k in SUMMARY_FIELDS}
    if isinstance(out.get("topics_covered"), list):
        out["topics_covered"] = [str(t).strip() for t in out["topics_covered"] if str(t).strip()]
    if isinstance(out.get("practice_assignments"), list):
        out["practice_assignments"] = [
            {
                "title": (a.get("title") or "").strip(),
                "description": (a.get("description") or "").strip(),
                "duration": a.get("duration"),
            }
            for a in out["practice_assignments"]
            if isinstance(a, dict)
        ]
    if "requires_admin_review" in out:
        out["requires_admin_review"] = bool(out["requires_admin_review"])
    return out


class SessionSummaryService:
    def __init__(
        self,
        summaries: SessionSummaryRepository,
        lessons: LessonRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._summaries = summaries
        self._lessons = lessons
        self._clock = clock

    def _lesson_for(self, actor: SessionUser, lesson_id: int):
        lesson = self._lessons.get_by_id(lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found")
        if not (actor.is_admin or actor.owns_instructor(lesson.instructor_id)):
            raise AuthorizationError("You can only write summaries for your own lessons")
        return lesson

    def create(self, *, actor: SessionUser, lesson_id: int, form: dict[str, Any]) -> int:
        lesson = self._lesson_for(actor, lesson_id)
        if self._summaries.get_by_lesson(lesson.lesson_id):
            raise ValidationError("A session summary already exists for this lesson")

        data = _normalize(form)
        validate_session_summary(data).raise_if_invalid()

        data.update(
            lesson_id=lesson.lesson_id,
            instructor_id=lesson.instructor_id,
            is_complete=True,
            submitted_at=self._clock(),
        )
        summary_id = self._summaries.create(data)
        logger.info("Session summary %s submitted for lesson %s", summary_id, lesson.lesson_id)
        return summary_id

    def update(self, *, actor: SessionUser, summary_id: int, form: dict[str, Any]) -> None:
        current = self.get(summary_id)
        self._lesson_for(actor, current.lesson_id)

        changes = _normalize(form)
        merged = {**_form_of(current), **changes}
        validate_session_summary(merged).raise_if_invalid()

        if changes:
            self._summaries.update(summary_id, changes)
            logger.info("Session summary %s updated", summary_id)

    def delete(self, *, actor: SessionUser, summary_id: int) -> None:
        current = self.get(summary_id)
        self._lesson_for(actor, current.lesson_id)
        self._summaries.delete(summary_id)
        logger.info("Session summary %s deleted", summary_id)

    def get(self, summary_id: int) -> SessionSummary:
        summary = self._summaries.get_by_id(summary_id)
        if not summary:
            raise NotFoundError("Session summary not found")
        return summary

    def get_by_lesson(self, lesson_id: int) -> Optional[SessionSummary]:
        return self._summaries.get_by_lesson(lesson_id)

    def has_summary(self, lesson_id: int) -> bool:
        return self._summaries.get_by_lesson(lesson_id) is not None

    def list_all(self) -> list[SessionSummary]:
        return list(self._summaries.list_all())

    def list_for_instructor(self, instructor_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[SessionSummary]:
        return list(self._summaries.list_for_instructor(instructor_id, limit=limit))

    def list_for_student(self, student_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> list[SessionSummary]:
        return list(self._summaries.list_for_student(student_id, limit=limit))

    def mark_reviewed(self, *, actor: SessionUser, summary_id: int) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can review session summaries")
        self.get(summary_id)
        self._summaries.mark_reviewed(summary_id, reviewed_by=actor.user_id, reviewed_at=self._clock())
        logger.info("Session summary %s reviewed by %s", summary_id, actor.user_id)
