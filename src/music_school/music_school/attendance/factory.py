from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..common.time_utils import to_minutes
from .strategies.absent_strategy import AbsentStrategy
from .strategies.base import AttendanceStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.present_strategy import PresentStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_arrival(self, *, lesson_start: str, arrival_time: Optional[str], grace_minutes: int) -> AttendanceStrategy:
        if not arrival_time:
            return AbsentStrategy()
        if to_minutes(arrival_time) <= to_minutes(lesson_start) + grace_minutes:
            return PresentStrategy()
        return LateStrategy()
