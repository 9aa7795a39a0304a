from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.constants import CURRENCY
from ..core.enums import BillingStatus, OverpayHandling, PaymentMethod, PaymentStatus


@dataclass(frozen=True)
class BillingItem:
    description: str
    quantity: float
    unit_amount: float

    @property
    def total(self) -> float:
        return self.quantity * self.unit_amount


@dataclass(frozen=True)
class Payment:
    payment_id: int
    billing_id: int
    student_id: int
    amount: float
    method: PaymentMethod
    reference: Optional[str] = None
    note: Optional[str] = None
    overpay_handling: Optional[OverpayHandling] = None
    status: PaymentStatus = PaymentStatus.COMPLETED
    payment_date: Optional[datetime] = None
    processed_by: Optional[int] = None


@dataclass(frozen=True)
class Billing:
    billing_id: int
    student_id: int
    amount: float
    status: BillingStatus
    sessions_covered: int
    date_issued: date
    due_date: date
    currency: str = CURRENCY
    description: Optional[str] = None
    items: list[BillingItem] = field(default_factory=list)
    discount_amount: float = 0.0
    adjustment_amount: float = 0.0
    # Sum of completed payments.
    paid_amount: float = 0.0
    student_name: Optional[str] = None
    payments: list[Payment] = field(default_factory=list)

    @property
    def balance(self) -> float:
        return max(0.0, self.amount - self.paid_amount)

    @property
    def overpaid(self) -> float:
        return max(0.0, self.paid_amount - self.amount)
