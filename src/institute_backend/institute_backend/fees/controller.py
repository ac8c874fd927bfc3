from __future__ import annotations

from flask import Flask, request

from ..common.http import bearer_token, json_body, query_page, success, tenant_override
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import Operation
from ..container import Container
from .model import PaymentRequest


def register(app: Flask, container: Container) -> None:
    @app.route("/api/payments", methods=["POST"], endpoint="apply_payment")
    def apply_payment():
        body = json_body()
        scope = container.gate.enter(
            bearer_token(),
            Operation.APPLY_PAYMENT,
            tenant_override=tenant_override(),
            subject_override=body.get("student_id"),
        )
        req = PaymentRequest(
            amount=body.get("amount"),
            student_id=body.get("student_id"),
            discount=body.get("discount", 0),
            payment_mode=body.get("payment_mode") or "CASH",
            month=body.get("month"),
            year=body.get("year"),
            description=body.get("description"),
            transaction_id=body.get("transaction_id"),
            idempotency_key=request.headers.get("Idempotency-Key") or body.get("idempotency_key"),
        )
        result = container.fee_ledger.apply_payment(scope, req)
        return success(
            {
                "payment": result.payment,
                "receipt_number": result.payment.receipt_number,
                "paid_amount": result.student.paid_amount,
                "due_amount": result.student.due_amount,
                "replayed": result.replayed,
            },
            status=200 if result.replayed else 201,
            message="Payment already recorded" if result.replayed else "Payment recorded successfully",
        )

    @app.route("/api/payments", methods=["GET"], endpoint="list_payments")
    def list_payments():
        student_id = request.args.get("student_id")
        scope = container.gate.enter(
            bearer_token(),
            Operation.VIEW_PAYMENTS,
            tenant_override=tenant_override(),
            subject_override=student_id,
        )
        page, limit = query_page(DEFAULT_PAGE_LIMIT)
        return success(container.fee_ledger.list_payments(scope, page=page, limit=limit))

    @app.route("/api/fees", methods=["GET"], endpoint="fee_status")
    def fee_status():
        scope = container.gate.enter(
            bearer_token(),
            Operation.VIEW_FEES,
            tenant_override=tenant_override(),
            subject_override=request.args.get("student_id"),
        )
        status = container.fee_ledger.fee_status(scope)
        return success(
            {
                "student_id": status.student.student_id,
                "student_code": status.student.student_code,
                "name": status.student.name,
                "fees": {
                    "total_fees": status.student.total_fees,
                    "paid_amount": status.student.paid_amount,
                    "due_amount": status.student.due_amount,
                    "monthly_fees": status.student.monthly_fees,
                },
                "next_due": {"date": status.next_due_date, "amount": status.next_due_amount},
                "months_since_admission": status.months_since_admission,
                "registration_date": status.student.admission_date,
                "recent_payments": list(status.recent_payments),
            }
        )
