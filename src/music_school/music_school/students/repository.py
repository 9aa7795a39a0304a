from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol, Sequence

from .model import Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Student]:
        """All students ordered by name."""

        raise NotImplementedError

    def search(self, query: str) -> Sequence[Student]:
        raise NotImplementedError

    def max_student_number(self) -> int:
        """Highest numeric part of student_id_number, 0 when there are no students."""

        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, student_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, student_id: int) -> bool:
        raise NotImplementedError

    def record_attendance(self, student_id: int, *, marked_at: datetime) -> None:
        """sessions_attended += 1 and stamp last_attendance_marked_at."""

        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError
