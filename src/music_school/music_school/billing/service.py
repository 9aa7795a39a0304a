from __future__ import annotations

import io
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable, Optional

import pandas as pd

from ..common.datetime_utils import now_local
from ..core.constants import BILLING_CYCLE, BILLING_DUE_DAYS
from ..core.enums import BillingStatus, OverpayHandling, PaymentMethod, PaymentStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..students.repository import StudentRepository
from ..users.model import SessionUser
from .calculator.base import BillingCalculator
from .calculator.standard_calculator import StandardBillingCalculator
from .model import Billing, BillingItem, Payment
from .repository import BillingRepository, PaymentRepository

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "Invoice #",
    "Student",
    "Issued",
    "Due",
    "Sessions covered",
    "Amount",
    "Paid",
    "Balance",
    "Currency",
    "Status",
)


@dataclass(frozen=True)
class PaymentOutcome:
    payment_id: int
    billing_status: BillingStatus
    paid_amount: float
    credit_balance: float
    sessions_billed: int


def parse_items(raw: Iterable[dict]) -> list[BillingItem]:
    items = []
    for i, it in enumerate(raw or [], start=1):
        description = str((it or {}).get("description") or "").strip()
        if not description:
            raise ValidationError(f"Item {i} needs a description")
        try:
            quantity = float(it.get("quantity") or 0)
            unit_amount = float(it.get("unit_amount", it.get("unitAmount")) or 0)
        except (TypeError, ValueError):
            raise ValidationError(f"Item {i} quantity and amount must be numbers")
        if quantity < 0 or unit_amount < 0:
            raise ValidationError(f"Item {i} quantity and amount cannot be negative")
        items.append(BillingItem(description=description, quantity=quantity, unit_amount=unit_amount))
    return items


class BillingService:
    def __init__(
        self,
        billings: BillingRepository,
        payments: PaymentRepository,
        students: StudentRepository,
        *,
        calculator: Optional[BillingCalculator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._billings = billings
        self._payments = payments
        self._students = students
        self._calculator = calculator or StandardBillingCalculator()
        self._clock = clock

    # Invoices

    def generate_due_billings(self, student_id: int) -> list[int]:
        """Issue one invoice per completed, not yet invoiced cycle of BILLING_CYCLE sessions."""

        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student not found")

        covered = self._billings.max_sessions_covered(student_id)
        pending = student.sessions_attended - covered
        today = self._clock().date()
        created: list[int] = []

        while pending >= BILLING_CYCLE:
            covered += BILLING_CYCLE
            items = [
                BillingItem(
                    description=f"Lessons {covered - BILLING_CYCLE + 1}-{covered}",
                    quantity=BILLING_CYCLE,
                    unit_amount=self._calculator.cycle_amount(1),
                )
            ]
            billing_id = self._billings.create(
                {
                    "student_id": student_id,
                    "amount": self._calculator.cycle_amount(BILLING_CYCLE),
                    "status": BillingStatus.PENDING,
                    "sessions_covered": covered,
                    "date_issued": today,
                    "due_date": today + timedelta(days=BILLING_DUE_DAYS),
                    "description": f"{student.instrument} lessons ({BILLING_CYCLE} sessions)",
                    "items": items,
                }
            )
            created.append(billing_id)
            pending -= BILLING_CYCLE

        if created:
            logger.info("Issued %d invoice(s) for student %s", len(created), student_id)
        return created

    def list_all(self) -> list[Billing]:
        return list(self._billings.list_all())

    def list_for_student(self, student_id: int) -> list[Billing]:
        return list(self._billings.list_for_student(student_id))

    def get(self, billing_id: int) -> Billing:
        billing = self._billings.get_by_id(billing_id)
        if not billing:
            raise NotFoundError("Invoice not found")
        return replace(billing, payments=list(self._payments.list_for_billing(billing_id)))

    def list_overdue(self, today: Optional[date] = None) -> list[Billing]:
        today = today or self._clock().date()
        return list(self._billings.list_pending_due_before(today))

    def update_items(
        self,
        *,
        actor: SessionUser,
        billing_id: int,
        items: Iterable[dict],
        discount_amount: Optional[float] = None,
        adjustment_amount: Optional[float] = None,
    ) -> float:
        """Replace the line items; the invoice amount becomes their total."""

        if not actor.is_admin:
            raise AuthorizationError("Only admins can edit invoices")
        billing = self.get(billing_id)
        if billing.status == BillingStatus.CANCELLED:
            raise ValidationError("Cannot edit a cancelled invoice")

        parsed = parse_items(items)
        discount = billing.discount_amount if discount_amount is None else float(discount_amount)
        adjustment = billing.adjustment_amount if adjustment_amount is None else float(adjustment_amount)
        if discount < 0:
            raise ValidationError("Discount cannot be negative")

        amount = self._calculator.items_amount(parsed, discount=discount, adjustment=adjustment)
        changes: dict[str, Any] = {
            "items": parsed,
            "amount": amount,
            "discount_amount": discount,
            "adjustment_amount": adjustment,
        }
        if billing.status == BillingStatus.PAID and billing.paid_amount < amount:
            changes["status"] = BillingStatus.PENDING
        elif billing.status != BillingStatus.PAID and billing.paid_amount >= amount > 0:
            changes["status"] = BillingStatus.PAID

        self._billings.update(billing_id, changes)
        if "status" in changes:
            self._sync_sessions_billed(billing.student_id)
        logger.info("Invoice %s items updated, amount=%.2f", billing_id, amount)
        return amount

    def cancel(self, *, actor: SessionUser, billing_id: int) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can cancel invoices")
        billing = self.get(billing_id)
        if billing.status == BillingStatus.PAID:
            raise ValidationError("A paid invoice cannot be cancelled")
        self._billings.update(billing_id, {"status": BillingStatus.CANCELLED})
        logger.info("Invoice %s cancelled", billing_id)

    def delete(self, *, actor: SessionUser, billing_id: int) -> None:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can delete invoices")
        billing = self.get(billing_id)
        self._billings.delete(billing_id)
        self._sync_sessions_billed(billing.student_id)
        logger.info("Invoice %s deleted", billing_id)

    # Payments

    def record_payment(
        self,
        *,
        actor: SessionUser,
        billing_id: int,
        amount: float,
        method: PaymentMethod,
        reference: Optional[str] = None,
        note: Optional[str] = None,
        overpay_handling: OverpayHandling = OverpayHandling.NEXT,
    ) -> PaymentOutcome:
        if not actor.is_admin:
            raise AuthorizationError("Only admins can record payments")
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError("Payment amount must be a number")
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero")

        billing = self.get(billing_id)
        if billing.status == BillingStatus.CANCELLED:
            raise ValidationError("Cannot record a payment on a cancelled invoice")
        student = self._students.get_by_id(billing.student_id)
        if not student:
            raise NotFoundError("Student not found")

        credit = student.credit_balance
        if method == PaymentMethod.CREDIT:
            if amount > credit:
                raise ValidationError(f"Insufficient credit balance (available {credit:.2f})")
            credit -= amount

        payment_id = self._payments.create(
            {
                "billing_id": billing_id,
                "student_id": billing.student_id,
                "amount": amount,
                "method": method,
                "reference": (reference or "").strip() or None,
                "note": (note or "").strip() or None,
                "overpay_handling": overpay_handling,
                "status": PaymentStatus.COMPLETED,
                "payment_date": self._clock(),
                "processed_by": actor.user_id,
            }
        )

        paid_before = billing.paid_amount
        paid_after = paid_before + amount
        status = billing.status
        if paid_after >= billing.amount:
            status = BillingStatus.PAID
            self._billings.update(billing_id, {"status": status})

        # Only the part of this payment above the remaining balance is overpaid.
        overpay = max(0.0, paid_after - billing.amount) - max(0.0, paid_before - billing.amount)
        if overpay > 0 and overpay_handling == OverpayHandling.NEXT:
            credit += overpay

        sessions_billed = self._billings.count_paid_for_student(billing.student_id) * BILLING_CYCLE
        self._students.update(
            billing.student_id,
            {"credit_balance": round(credit, 2), "sessions_billed": sessions_billed},
        )
        logger.info(
            "Payment %s of %.2f (%s) recorded on invoice %s, status=%s",
            payment_id,
            amount,
            method.value,
            billing_id,
            status.value,
        )
        return PaymentOutcome(
            payment_id=payment_id,
            billing_status=status,
            paid_amount=paid_after,
            credit_balance=round(credit, 2),
            sessions_billed=sessions_billed,
        )

    def list_payments(self, billing_id: int) -> list[Payment]:
        return list(self._payments.list_for_billing(billing_id))

    def delete_payment(self, *, actor: SessionUser, payment_id: int) -> None:
        """Remove a payment and reopen its invoice when it no longer covers the amount."""

        if not actor.is_admin:
            raise AuthorizationError("Only admins can delete payments")
        payment = self._payments.get_by_id(payment_id)
        if not payment:
            raise NotFoundError("Payment not found")

        billing = self.get(payment.billing_id)
        overpay = self._overpaid_by(payment, billing)
        self._payments.delete(payment_id)

        remaining = billing.paid_amount - payment.amount
        if billing.status == BillingStatus.PAID and remaining < billing.amount:
            self._billings.update(billing.billing_id, {"status": BillingStatus.PENDING})

        student = self._students.get_by_id(payment.student_id)
        changes: dict[str, Any] = {
            "sessions_billed": self._billings.count_paid_for_student(payment.student_id) * BILLING_CYCLE
        }
        if student:
            credit = student.credit_balance
            if payment.method == PaymentMethod.CREDIT:
                credit += payment.amount
            if overpay > 0 and payment.overpay_handling == OverpayHandling.NEXT:
                # the credit may already be spent; the balance never goes negative
                credit = max(0.0, credit - overpay)
            if credit != student.credit_balance:
                changes["credit_balance"] = round(credit, 2)
        self._students.update(payment.student_id, changes)
        logger.info("Payment %s deleted from invoice %s", payment_id, billing.billing_id)

    def _overpaid_by(self, payment: Payment, billing: Billing) -> float:
        """Part of `payment` that went beyond the invoice amount, given the payments recorded before it."""

        paid_before = sum(
            p.amount
            for p in self._payments.list_for_billing(billing.billing_id)
            if p.status == PaymentStatus.COMPLETED and p.payment_id < payment.payment_id
        )
        paid_after = paid_before + payment.amount
        return max(0.0, paid_after - billing.amount) - max(0.0, paid_before - billing.amount)

    def _sync_sessions_billed(self, student_id: int) -> None:
        self._students.update(
            student_id,
            {"sessions_billed": self._billings.count_paid_for_student(student_id) * BILLING_CYCLE},
        )

    def count_pending(self) -> int:
        return self._billings.count_by_status(BillingStatus.PENDING)


def export_xlsx(billings: Iterable[Billing]) -> bytes:
    """Invoice list as an .xlsx workbook (one row per invoice)."""

    data = [
        {
            "Invoice #": b.billing_id,
            "Student": b.student_name or "",
            "Issued": b.date_issued,
            "Due": b.due_date,
            "Sessions covered": b.sessions_covered,
            "Amount": b.amount,
            "Paid": b.paid_amount,
            "Balance": b.balance,
            "Currency": b.currency,
            "Status": b.status.value,
        }
        for b in billings
    ]
    df = pd.DataFrame(data, columns=EXPORT_COLUMNS)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Invoices")
    return output.getvalue()
