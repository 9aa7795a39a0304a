from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..core.enums import RecordStatus

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class TimeSlot:
    start: str
    end: str


@dataclass(frozen=True)
class Instructor:
    instructor_id: int
    name: str
    specialties: list[str] = field(default_factory=list)
    color: str = "#60a5fa"
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    # {"Monday": [TimeSlot("09:00", "17:00")], ...}
    availability: dict[str, list[TimeSlot]] = field(default_factory=dict)
    hourly_rate: Optional[float] = None
    profile_picture_url: Optional[str] = None
    status: RecordStatus = RecordStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == RecordStatus.ACTIVE
