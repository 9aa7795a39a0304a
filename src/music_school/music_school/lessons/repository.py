from __future__ import annotations

from datetime import date
from typing import Any, Optional, Protocol, Sequence

from .model import Lesson


class LessonRepository(Protocol):
    def get_by_id(self, lesson_id: int) -> Optional[Lesson]:
        raise NotImplementedError

    def list_range(
        self,
        *,
        start: date,
        end: date,
        instructor_id: Optional[int] = None,
        student_id: Optional[int] = None,
        include_deleted: bool = False,
    ) -> Sequence[Lesson]:
        """Lessons with start <= lesson_date <= end, ordered by date then time."""

        raise NotImplementedError

    def list_deleted(self) -> Sequence[Lesson]:
        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, lesson_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, lesson_id: int) -> bool:
        raise NotImplementedError
