from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from ..model import BillingItem


class BillingCalculator(ABC):
    """Calculator interface (Strategy Pattern for invoice amounts)."""

    @abstractmethod
    def cycle_amount(self, sessions: int) -> float:
        raise NotImplementedError

    @abstractmethod
    def items_amount(self, items: Iterable[BillingItem], *, discount: float = 0.0, adjustment: float = 0.0) -> float:
        raise NotImplementedError
