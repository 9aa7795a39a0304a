from __future__ import annotations

from typing import Optional

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision


class AbsentStrategy(AttendanceStrategy):
    """No arrival recorded."""

    def decide(self, *, lesson_start: str, arrival_time: Optional[str], grace_minutes: int) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.ABSENT)
