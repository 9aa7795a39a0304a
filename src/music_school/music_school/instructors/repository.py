from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .model import Instructor


class InstructorRepository(Protocol):
    def get_by_id(self, instructor_id: int) -> Optional[Instructor]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Instructor]:
        """All instructors ordered by name."""

        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, instructor_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, instructor_id: int) -> bool:
        raise NotImplementedError

    def count_active(self) -> int:
        raise NotImplementedError
