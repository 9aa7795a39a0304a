from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_lesson_and_student(self, lesson_id: int, student_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_lesson(self, lesson_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_range(
        self,
        *,
        start: date,
        end: date,
        student_id: Optional[int] = None,
        instructor_id: Optional[int] = None,
    ) -> Sequence[AttendanceRecord]:
        """Records whose lesson falls in [start, end], newest lesson first."""

        raise NotImplementedError

    def statuses_for_lessons(self, lesson_ids: Iterable[int]) -> dict[int, AttendanceStatus]:
        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, record_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, record_id: int) -> bool:
        raise NotImplementedError
