from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.constants import BILLING_CYCLE
from ..core.enums import RecordStatus

AVATAR_BASE_URL = "https://api.dicebear.com/8.x/pixel-art/svg"


def avatar_url(name: str) -> str:
    seed = "".join((name or "student").lower().split())
    return f"{AVATAR_BASE_URL}?seed={seed}"


@dataclass(frozen=True)
class Student:
    student_id: int
    student_id_number: str
    name: str
    instrument: str
    nickname: Optional[str] = None
    birthdate: Optional[date] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    facebook: Optional[str] = None
    guardian_full_name: Optional[str] = None
    guardian_relationship: Optional[str] = None
    guardian_phone: Optional[str] = None
    guardian_email: Optional[str] = None
    guardian_facebook: Optional[str] = None
    address_country: Optional[str] = None
    address_province: Optional[str] = None
    address_city: Optional[str] = None
    address_barangay: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    level: Optional[str] = None
    instructor_id: Optional[int] = None
    sessions_attended: int = 0
    sessions_billed: int = 0
    credit_balance: float = 0.0
    status: RecordStatus = RecordStatus.ACTIVE
    notes: Optional[str] = None
    parent_student_id: Optional[int] = None
    last_attendance_marked_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE

    @property
    def unpaid_sessions(self) -> int:
        return max(0, self.sessions_attended - self.sessions_billed)

    @property
    def cycle_progress(self) -> int:
        """Sessions shown on the billing progress bar (0..BILLING_CYCLE).

        A full cycle that is still unpaid shows as BILLING_CYCLE, not 0.
        """
        unpaid = self.unpaid_sessions
        progress = unpaid % BILLING_CYCLE
        if progress == 0 and unpaid > 0:
            return BILLING_CYCLE
        return progress

    @property
    def profile_picture_url(self) -> str:
        return avatar_url(self.name)


def format_student_number(n: int) -> str:
    return f"STU-{n:04d}"


def parse_student_number(value: Optional[str]) -> int:
    """Numeric part of "STU-0012" (0 when the value does not follow the pattern)."""

    digits = (value or "").rsplit("-", 1)[-1]
    return int(digits) if digits.isdigit() else 0
