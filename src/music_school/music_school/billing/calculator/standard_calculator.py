from __future__ import annotations

from typing import Iterable

from ...core.constants import LESSON_PRICE
from ..model import BillingItem
from .base import BillingCalculator


class StandardBillingCalculator(BillingCalculator):
    """Flat lesson price; line items: sum(quantity * unit) - discount + adjustment, not below 0."""

    def __init__(self, lesson_price: float = LESSON_PRICE):
        self._lesson_price = float(lesson_price)

    def cycle_amount(self, sessions: int) -> float:
        return self._lesson_price * int(sessions)

    def items_amount(self, items: Iterable[BillingItem], *, discount: float = 0.0, adjustment: float = 0.0) -> float:
        total = sum(i.total for i in items)
        return max(round(total - float(discount or 0) + float(adjustment or 0), 2), 0.0)
