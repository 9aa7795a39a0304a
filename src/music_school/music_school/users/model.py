from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Login account. Instructors are linked to their instructor profile."""

    user_id: int
    full_name: str
    email: str
    password_hash: str
    role: Role
    instructor_id: Optional[int] = None
    is_active: bool = True


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    role: Role
    instructor_id: Optional[int] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns_instructor(self, instructor_id: Optional[int]) -> bool:
        return self.is_admin or (instructor_id is not None and self.instructor_id == int(instructor_id))
