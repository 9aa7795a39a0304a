from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    record_id: int
    lesson_id: int
    student_id: int
    instructor_id: int
    status: AttendanceStatus
    arrival_time: Optional[str] = None
    departure_time: Optional[str] = None
    notes: Optional[str] = None
    makeup_required: bool = False
    marked_at: Optional[datetime] = None
    marked_by: Optional[int] = None
    # Joined for lists and reports.
    student_name: Optional[str] = None
    lesson_date: Optional[date] = None
    lesson_time: Optional[str] = None

    @property
    def counts_as_attended(self) -> bool:
        return self.status in (AttendanceStatus.PRESENT, AttendanceStatus.LATE)
