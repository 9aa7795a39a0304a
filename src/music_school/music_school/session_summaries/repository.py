from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional, Protocol, Sequence

from .model import SessionSummary


class SessionSummaryRepository(Protocol):
    def get_by_id(self, summary_id: int) -> Optional[SessionSummary]:
        raise NotImplementedError

    def get_by_lesson(self, lesson_id: int) -> Optional[SessionSummary]:
        raise NotImplementedError

    def lesson_ids_with_summary(self, lesson_ids: Iterable[int]) -> set[int]:
        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, summary_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, summary_id: int) -> bool:
        raise NotImplementedError

    def list_all(self) -> Sequence[SessionSummary]:
        """Newest first."""

        raise NotImplementedError

    def list_for_instructor(self, instructor_id: int, *, limit: int) -> Sequence[SessionSummary]:
        raise NotImplementedError

    def list_for_student(self, student_id: int, *, limit: int) -> Sequence[SessionSummary]:
        raise NotImplementedError

    def count_for_instructor(self, instructor_id: int, *, start: date, end: date) -> int:
        raise NotImplementedError

    def mark_reviewed(self, summary_id: int, *, reviewed_by: int, reviewed_at: datetime) -> bool:
        raise NotImplementedError
