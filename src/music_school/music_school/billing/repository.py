from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Protocol, Sequence

from ..core.enums import BillingStatus
from .model import Billing, Payment


class BillingRepository(Protocol):
    def get_by_id(self, billing_id: int) -> Optional[Billing]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Billing]:
        """Newest first, with paid_amount and student_name filled in."""

        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Billing]:
        raise NotImplementedError

    def list_pending_due_before(self, day: date) -> Sequence[Billing]:
        raise NotImplementedError

    def max_sessions_covered(self, student_id: int) -> int:
        raise NotImplementedError

    def count_paid_for_student(self, student_id: int) -> int:
        raise NotImplementedError

    def count_by_status(self, status: BillingStatus) -> int:
        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def update(self, billing_id: int, changes: dict[str, Any]) -> bool:
        raise NotImplementedError

    def delete(self, billing_id: int) -> bool:
        raise NotImplementedError


class PaymentRepository(Protocol):
    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        raise NotImplementedError

    def list_for_billing(self, billing_id: int) -> Sequence[Payment]:
        raise NotImplementedError

    def list_range(self, *, start: datetime, end: datetime, student_id: Optional[int] = None) -> Sequence[Payment]:
        """Completed payments with start <= payment_date < end."""

        raise NotImplementedError

    def create(self, data: dict[str, Any]) -> int:
        raise NotImplementedError

    def delete(self, payment_id: int) -> bool:
        raise NotImplementedError
