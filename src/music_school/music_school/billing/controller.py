from __future__ import annotations

import io
from datetime import date

from flask import Flask, send_file

from ..common.mappers import to_ui, to_ui_list
from ..common.web import admin_required, arg_date, arg_int, current_user, json_body, ok
from ..container import Container
from ..core.enums import OverpayHandling, PaymentMethod
from ..core.exceptions import ValidationError
from .model import Billing
from .service import export_xlsx

_RENAMES = {"billing_id": "id"}
_PAYMENT_RENAMES = {"payment_id": "id", "payment_date": "date"}


def _billing_ui(b: Billing) -> dict:
    out = to_ui(b, renames=_RENAMES)
    out["balance"] = b.balance
    out["payments"] = to_ui_list(b.payments, renames=_PAYMENT_RENAMES)
    return out


def register(app: Flask, container: Container) -> None:
    svc = container.billing_service

    @app.route("/api/billings", methods=["GET"], endpoint="list_billings")
    @admin_required
    def list_billings():
        student_id = arg_int("studentId")
        rows = svc.list_for_student(student_id) if student_id else svc.list_all()
        return ok({"billings": [_billing_ui(b) for b in rows]})

    @app.route("/api/billings/overdue", methods=["GET"], endpoint="overdue_billings")
    @admin_required
    def overdue_billings():
        rows = svc.list_overdue(arg_date("today", date.today()))
        return ok({"billings": [_billing_ui(b) for b in rows]})

    @app.route("/api/billings/<int:billing_id>", methods=["GET"], endpoint="get_billing")
    @admin_required
    def get_billing(billing_id: int):
        return ok({"billing": _billing_ui(svc.get(billing_id))})

    @app.route("/api/billings/<int:billing_id>/items", methods=["PUT"], endpoint="update_billing_items")
    @admin_required
    def update_billing_items(billing_id: int):
        data = json_body()
        amount = svc.update_items(
            actor=current_user(),
            billing_id=billing_id,
            items=data.get("items") or [],
            discount_amount=data.get("discountAmount"),
            adjustment_amount=data.get("adjustmentAmount"),
        )
        return ok({"amount": amount})

    @app.route("/api/billings/<int:billing_id>/payments", methods=["GET"], endpoint="list_billing_payments")
    @admin_required
    def list_billing_payments(billing_id: int):
        return ok({"payments": to_ui_list(svc.list_payments(billing_id), renames=_PAYMENT_RENAMES)})

    @app.route("/api/billings/<int:billing_id>/payments", methods=["POST"], endpoint="record_payment")
    @admin_required
    def record_payment(billing_id: int):
        data = json_body()
        try:
            method = PaymentMethod(data.get("method") or PaymentMethod.CASH.value)
            handling = OverpayHandling(data.get("overpayHandling") or OverpayHandling.NEXT.value)
        except ValueError:
            raise ValidationError("Invalid payment method or overpay handling")

        outcome = svc.record_payment(
            actor=current_user(),
            billing_id=billing_id,
            amount=data.get("amount"),
            method=method,
            reference=data.get("reference"),
            note=data.get("note"),
            overpay_handling=handling,
        )
        return ok({"payment": to_ui(outcome)}, 201)

    @app.route("/api/payments/<int:payment_id>", methods=["DELETE"], endpoint="delete_payment")
    @admin_required
    def delete_payment(payment_id: int):
        svc.delete_payment(actor=current_user(), payment_id=payment_id)
        return ok()

    @app.route("/api/billings/<int:billing_id>/cancel", methods=["POST"], endpoint="cancel_billing")
    @admin_required
    def cancel_billing(billing_id: int):
        svc.cancel(actor=current_user(), billing_id=billing_id)
        return ok()

    @app.route("/api/billings/<int:billing_id>", methods=["DELETE"], endpoint="delete_billing")
    @admin_required
    def delete_billing(billing_id: int):
        svc.delete(actor=current_user(), billing_id=billing_id)
        return ok()

    @app.route("/api/billings/export", methods=["GET"], endpoint="export_billings")
    @admin_required
    def export_billings():
        output = io.BytesIO(export_xlsx(svc.list_all()))
        return send_file(
            output,
            download_name="invoices.xlsx",
            as_attachment=True,
            mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        )
