from __future__ import annotations

from datetime import date, datetime

import pytest

from src.music_school.music_school.billing.service import BillingService, export_xlsx, parse_items
from src.music_school.music_school.core.enums import BillingStatus, OverpayHandling, PaymentMethod
from src.music_school.music_school.core.exceptions import AuthorizationError, ValidationError
from tests.fakes import ADMIN, INSTRUCTOR, FakeBillingRepo, FakePaymentRepo, FakeStudentRepo, make_student

NOW = datetime(2026, 3, 2, 15, 0)


class Env:
    def __init__(self, student=None):
        self.students = FakeStudentRepo([student or make_student(1, sessions_attended=4)])
        self.payments = FakePaymentRepo()
        self.billings = FakeBillingRepo(self.payments)
        self.svc = BillingService(self.billings, self.payments, self.students, clock=lambda: NOW)

    def invoice(self) -> int:
        [billing_id] = self.svc.generate_due_billings(1)
        return billing_id


def test_one_invoice_per_completed_cycle():
    env = Env(make_student(1, sessions_attended=9))

    ids = env.svc.generate_due_billings(1)

    assert len(ids) == 2
    assert [env.billings.rows[i].sessions_covered for i in ids] == [4, 8]
    first = env.billings.rows[ids[0]]
    assert first.due_date == date(2026, 3, 9)
    assert first.items[0].description == "Lessons 1-4"
    assert env.svc.generate_due_billings(1) == []


def test_full_payment_marks_paid_and_bills_sessions():
    env = Env()
    bid = env.invoice()

    outcome = env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=2000, method=PaymentMethod.CASH)

    assert outcome.billing_status == BillingStatus.PAID
    assert outcome.sessions_billed == 4
    assert env.students.rows[1].sessions_billed == 4
    assert env.students.rows[1].unpaid_sessions == 0


def test_partial_payments_accumulate():
    env = Env()
    bid = env.invoice()

    first = env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=500, method=PaymentMethod.GCASH)
    assert first.billing_status == BillingStatus.PENDING
    assert env.svc.get(bid).balance == 1500

    second = env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=1500, method=PaymentMethod.BDO)
    assert second.billing_status == BillingStatus.PAID
    assert len(env.svc.list_payments(bid)) == 2


def test_overpayment_goes_to_credit_when_requested():
    env = Env()
    bid = env.invoice()

    outcome = env.svc.record_payment(
        actor=ADMIN, billing_id=bid, amount=2300, method=PaymentMethod.CASH, overpay_handling=OverpayHandling.NEXT
    )

    assert outcome.credit_balance == 300
    assert env.students.rows[1].credit_balance == 300


def test_overpayment_on_hold_is_not_credited():
    env = Env()
    bid = env.invoice()

    outcome = env.svc.record_payment(
        actor=ADMIN, billing_id=bid, amount=2300, method=PaymentMethod.CASH, overpay_handling=OverpayHandling.HOLD
    )

    assert outcome.credit_balance == 0


def test_credit_payment_draws_down_balance():
    env = Env(make_student(1, sessions_attended=4, credit_balance=800))
    bid = env.invoice()

    with pytest.raises(ValidationError, match="Insufficient credit balance"):
        env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=900, method=PaymentMethod.CREDIT)

    env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=800, method=PaymentMethod.CREDIT)
    assert env.students.rows[1].credit_balance == 0


def test_deleting_payment_reopens_invoice_and_refunds_credit():
    env = Env(make_student(1, sessions_attended=4, credit_balance=2000))
    bid = env.invoice()
    outcome = env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=2000, method=PaymentMethod.CREDIT)

    env.svc.delete_payment(actor=ADMIN, payment_id=outcome.payment_id)

    assert env.billings.rows[bid].status == BillingStatus.PENDING
    assert env.students.rows[1].credit_balance == 2000
    assert env.students.rows[1].sessions_billed == 0


def test_deleting_overpaid_payment_takes_back_its_credit():
    env = Env()
    bid = env.invoice()
    env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=1500, method=PaymentMethod.CASH)
    second = env.svc.record_payment(
        actor=ADMIN, billing_id=bid, amount=800, method=PaymentMethod.CASH, overpay_handling=OverpayHandling.NEXT
    )
    assert env.students.rows[1].credit_balance == 300

    env.svc.delete_payment(actor=ADMIN, payment_id=second.payment_id)

    assert env.students.rows[1].credit_balance == 0
    assert env.billings.rows[bid].status == BillingStatus.PENDING


def test_payment_validation():
    env = Env()
    bid = env.invoice()

    with pytest.raises(ValidationError, match="greater than zero"):
        env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=0, method=PaymentMethod.CASH)
    with pytest.raises(AuthorizationError):
        env.svc.record_payment(actor=INSTRUCTOR, billing_id=bid, amount=10, method=PaymentMethod.CASH)

    env.svc.cancel(actor=ADMIN, billing_id=bid)
    with pytest.raises(ValidationError, match="cancelled invoice"):
        env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=10, method=PaymentMethod.CASH)


def test_paid_invoice_cannot_be_cancelled():
    env = Env()
    bid = env.invoice()
    env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=2000, method=PaymentMethod.CASH)

    with pytest.raises(ValidationError):
        env.svc.cancel(actor=ADMIN, billing_id=bid)


def test_editing_items_recomputes_amount_and_status():
    env = Env()
    bid = env.invoice()
    env.svc.record_payment(actor=ADMIN, billing_id=bid, amount=2000, method=PaymentMethod.CASH)

    amount = env.svc.update_items(
        actor=ADMIN,
        billing_id=bid,
        items=[{"description": "Lessons 1-4", "quantity": 4, "unitAmount": 500}, {"description": "Books", "quantity": 1, "unit_amount": 300}],
    )

    assert amount == 2300
    assert env.billings.rows[bid].status == BillingStatus.PENDING
    assert env.students.rows[1].sessions_billed == 0


def test_parse_items_rejects_bad_lines():
    with pytest.raises(ValidationError, match="Item 1 needs a description"):
        parse_items([{"quantity": 1}])
    with pytest.raises(ValidationError, match="cannot be negative"):
        parse_items([{"description": "x", "quantity": -1, "unit_amount": 1}])


def test_overdue_lists_pending_past_due():
    env = Env()
    bid = env.invoice()

    assert env.svc.list_overdue(date(2026, 3, 9)) == []
    assert [b.billing_id for b in env.svc.list_overdue(date(2026, 3, 10))] == [bid]


def test_export_is_an_xlsx_workbook():
    env = Env()
    env.invoice()

    data = export_xlsx(env.svc.list_all())

    assert data[:2] == b"PK"
