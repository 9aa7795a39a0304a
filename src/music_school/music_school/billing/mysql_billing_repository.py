from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Sequence

from ..common.mappers import dump_json, load_json_list
from ..core.enums import BillingStatus, OverpayHandling, PaymentMethod, PaymentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_update, db_cursor, fetchall, fetchone
from .model import Billing, BillingItem, Payment
from .repository import BillingRepository, PaymentRepository

_BILLING_SELECT = """
    SELECT b.billing_id, b.student_id, b.amount, b.currency, b.status, b.sessions_covered,
           b.date_issued, b.due_date, b.description, b.items, b.discount_amount, b.adjustment_amount,
           s.name AS student_name,
           COALESCE((SELECT SUM(p.amount) FROM payments p
                     WHERE p.billing_id = b.billing_id AND p.status = 'completed'), 0) AS paid_amount
    FROM billings b
    LEFT JOIN students s ON s.student_id = b.student_id
"""
_BILLING_WRITABLE = (
    "student_id",
    "amount",
    "currency",
    "status",
    "sessions_covered",
    "date_issued",
    "due_date",
    "description",
    "items",
    "discount_amount",
    "adjustment_amount",
)
_PAYMENT_COLUMNS = (
    "payment_id, billing_id, student_id, amount, method, reference, note, "
    "overpay_handling, status, payment_date, processed_by"
)
_PAYMENT_WRITABLE = (
    "billing_id",
    "student_id",
    "amount",
    "method",
    "reference",
    "note",
    "overpay_handling",
    "status",
    "payment_date",
    "processed_by",
)


def _to_billing(r: dict) -> Billing:
    return Billing(
        billing_id=int(r["billing_id"]),
        student_id=int(r["student_id"]),
        amount=float(r["amount"]),
        status=BillingStatus(r["status"]),
        sessions_covered=int(r["sessions_covered"]),
        date_issued=r["date_issued"],
        due_date=r["due_date"],
        currency=r.get("currency") or "PHP",
        description=r.get("description"),
        items=[
            BillingItem(
                description=str(i.get("description", "")),
                quantity=float(i.get("quantity") or 0),
                unit_amount=float(i.get("unit_amount") or 0),
            )
            for i in load_json_list(r.get("items"))
        ],
        discount_amount=float(r.get("discount_amount") or 0),
        adjustment_amount=float(r.get("adjustment_amount") or 0),
        paid_amount=float(r.get("paid_amount") or 0),
        student_name=r.get("student_name"),
    )


def _to_payment(r: dict) -> Payment:
    return Payment(
        payment_id=int(r["payment_id"]),
        billing_id=int(r["billing_id"]),
        student_id=int(r["student_id"]),
        amount=float(r["amount"]),
        method=PaymentMethod(r["method"]),
        reference=r.get("reference"),
        note=r.get("note"),
        overpay_handling=OverpayHandling(r["overpay_handling"]) if r.get("overpay_handling") else None,
        status=PaymentStatus(r.get("status") or "completed"),
        payment_date=r.get("payment_date"),
        processed_by=r.get("processed_by"),
    )


def _to_columns(data: dict[str, Any]) -> dict[str, Any]:
    out = {}
    for k, v in data.items():
        if k == "items":
            v = dump_json([asdict(i) if is_dataclass(i) else i for i in v or []])
        elif isinstance(v, Enum):
            v = v.value
        out[k] = v
    return out


def _insert(cur, table: str, row: dict[str, Any]) -> int:
    cols = list(row)
    cur.execute(
        f"INSERT INTO {table}({', '.join(cols)}) VALUES({', '.join(['%s'] * len(cols))})",
        tuple(row[c] for c in cols),
    )
    return int(cur.lastrowid)


class MySQLBillingRepository(BillingRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, billing_id: int) -> Optional[Billing]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_BILLING_SELECT + " WHERE b.billing_id=%s", (int(billing_id),))
            r = fetchone(cur)
            return _to_billing(r) if r else None

    def list_all(self) -> Sequence[Billing]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_BILLING_SELECT + " ORDER BY b.date_issued DESC, b.billing_id DESC")
            return [_to_billing(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[Billing]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _BILLING_SELECT + " WHERE b.student_id=%s ORDER BY b.sessions_covered ASC",
                (int(student_id),),
            )
            return [_to_billing(r) for r in fetchall(cur)]

    def list_pending_due_before(self, day: date) -> Sequence[Billing]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                _BILLING_SELECT + " WHERE b.status IN ('pending', 'overdue') AND b.due_date < %s ORDER BY b.due_date ASC",
                (day,),
            )
            return [_to_billing(r) for r in fetchall(cur)]

    def max_sessions_covered(self, student_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COALESCE(MAX(sessions_covered), 0) AS n FROM billings WHERE student_id=%s",
                (int(student_id),),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_paid_for_student(self, student_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM billings WHERE student_id=%s AND status='paid'",
                (int(student_id),),
            )
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def count_by_status(self, status: BillingStatus) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM billings WHERE status=%s", (status.value,))
            r = fetchone(cur)
            return int(r["n"]) if r else 0

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _BILLING_WRITABLE})
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(cur, "billings", row)

    def update(self, billing_id: int, changes: dict[str, Any]) -> bool:
        stmt = build_update("billings", "billing_id", int(billing_id), _to_columns(changes), allowed=_BILLING_WRITABLE)
        if not stmt:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(*stmt)
            return cur.rowcount > 0

    def delete(self, billing_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM billings WHERE billing_id=%s", (int(billing_id),))
            return cur.rowcount > 0


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, payment_id: int) -> Optional[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE payment_id=%s", (int(payment_id),))
            r = fetchone(cur)
            return _to_payment(r) if r else None

    def list_for_billing(self, billing_id: int) -> Sequence[Payment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE billing_id=%s ORDER BY payment_date ASC",
                (int(billing_id),),
            )
            return [_to_payment(r) for r in fetchall(cur)]

    def list_range(self, *, start: datetime, end: datetime, student_id: Optional[int] = None) -> Sequence[Payment]:
        sql = f"SELECT {_PAYMENT_COLUMNS} FROM payments WHERE status='completed' AND payment_date >= %s AND payment_date < %s"
        params: list[Any] = [start, end]
        if student_id:
            sql += " AND student_id=%s"
            params.append(int(student_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY payment_date ASC", tuple(params))
            return [_to_payment(r) for r in fetchall(cur)]

    def create(self, data: dict[str, Any]) -> int:
        row = _to_columns({k: v for k, v in data.items() if k in _PAYMENT_WRITABLE})
        with db_cursor(self._conn_factory) as (_, cur):
            return _insert(cur, "payments", row)

    def delete(self, payment_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM payments WHERE payment_id=%s", (int(payment_id),))
            return cur.rowcount > 0
