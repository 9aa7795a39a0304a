from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import AttendanceStatus


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Turns a lesson start and an arrival time into an attendance status (Strategy Pattern)."""

    @abstractmethod
    def decide(self, *, lesson_start: str, arrival_time: Optional[str], grace_minutes: int) -> StatusDecision:
        raise NotImplementedError
