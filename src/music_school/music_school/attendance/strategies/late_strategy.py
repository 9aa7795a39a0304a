from __future__ import annotations

from typing import Optional

from ...common.time_utils import to_minutes
from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class LateStrategy(AttendanceStrategy):
    """Late arrival."""

    def decide(self, *, lesson_start: str, arrival_time: Optional[str], grace_minutes: int) -> StatusDecision:
        minutes = to_minutes(arrival_time or lesson_start) - to_minutes(lesson_start)
        return StatusDecision(status=AttendanceStatus.LATE, note=f"Arrived {minutes} min late")
