from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from ..audit.model import AuditEntry
from ..audit.recorder import MODULE_PAYMENT, AuditRecorder
from ..common.datetime_utils import month_name, month_number, now_local
from ..common.pagination import Page
from ..common.validators import parse_enum, require_money, require_positive_int
from ..core.enums import ONLINE_PAYMENT_MODES, PaymentMode, Role
from ..core.exceptions import InactiveSubjectError, NotFoundError, SubjectNotFoundError, ValidationError
from ..tenancy.guard import EffectiveScope
from ..users.model import Student
from ..users.repository import BranchRepository, StudentRepository
from .billing import months_since_admission, next_due
from .model import FeeStatus, NewPayment, Payment, PaymentRequest, PaymentResult
from .repository import PaymentRepository

logger = logging.getLogger(__name__)

RECENT_PAYMENTS_LIMIT = 10


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class FeeLedger:
    """Payments and the cached per-student balances they move.

    Discounts are only honoured on the admin channel; staff and student
    payments always carry a zero discount.
    """

    def __init__(
        self,
        payments: PaymentRepository,
        students: StudentRepository,
        branches: BranchRepository,
        audit: AuditRecorder,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._payments = payments
        self._students = students
        self._branches = branches
        self._audit = audit
        self._clock = clock

    def _student(self, tenant_id: int, student_id: Any) -> Student:
        sid = require_positive_int(student_id, "Student id")
        student = self._students.get(tenant_id, sid)
        if not student:
            raise SubjectNotFoundError("Student not found or does not belong to your branch")
        return student

    def _billing_period(self, req: PaymentRequest, now: datetime) -> tuple[str, int]:
        month = month_name(now.month)
        if _clean(req.month):
            try:
                month = month_name(month_number(req.month))
            except ValueError:
                raise ValidationError("Month is invalid")
        year = now.year
        if req.year not in (None, ""):
            year = require_positive_int(req.year, "Year")
        return month, year

    def apply_payment(self, scope: EffectiveScope, req: PaymentRequest) -> PaymentResult:
        amount = require_money(req.amount, "Amount")
        mode = parse_enum(PaymentMode, req.payment_mode, "Payment mode")
        transaction_id = _clean(req.transaction_id)
        idempotency_key = _clean(req.idempotency_key)

        if scope.role == Role.STUDENT:
            student_id: Any = scope.require_subject()
            if mode not in ONLINE_PAYMENT_MODES:
                raise ValidationError("Invalid payment mode. Allowed: UPI, ONLINE, QR, GATEWAY")
            if not transaction_id:
                raise ValidationError("Transaction id is required for online payments")
            discount = Decimal("0.00")
            idempotency_key = idempotency_key or f"txn:{transaction_id}"
        else:
            student_id = req.student_id if req.student_id is not None else scope.subject_id
            if student_id is None:
                raise ValidationError("Student id is required")
            if scope.role == Role.ADMIN:
                discount = require_money(req.discount if req.discount is not None else 0, "Discount")
            else:
                discount = Decimal("0.00")

        if discount > amount:
            raise ValidationError("Discount cannot exceed amount")

        student = self._student(scope.tenant_id, student_id)
        if not student.is_active:
            raise InactiveSubjectError("Only active students can receive payments")

        branch = self._branches.get(scope.tenant_id)
        if not branch:
            raise NotFoundError("Branch not found")

        now = self._clock()
        month, year = self._billing_period(req, now)
        result = self._payments.record_payment(
            NewPayment(
                tenant_id=scope.tenant_id,
                student_id=student.student_id,
                amount=amount,
                discount=discount,
                payment_mode=mode,
                month=month,
                year=year,
                collected_by=scope.principal_id,
                paid_at=now,
                description=_clean(req.description),
                transaction_id=transaction_id,
                idempotency_key=idempotency_key,
            ),
            branch_code=branch.code,
        )

        if result.replayed:
            logger.info("Replayed payment %s for student %s", result.payment.receipt_number, student.student_id)
            return result

        logger.info(
            "Payment %s recorded for student %s (net %s) by %s %s",
            result.payment.receipt_number,
            student.student_id,
            result.payment.net_amount,
            scope.role.value,
            scope.principal_id,
        )
        self._audit.record(
            AuditEntry(
                tenant_id=scope.tenant_id,
                principal_id=scope.principal_id,
                role=scope.role,
                action="CREATE_PAYMENT",
                module=MODULE_PAYMENT,
                entity_id=result.payment.receipt_number,
                old_data={"paid_amount": student.paid_amount, "due_amount": student.due_amount},
                new_data={
                    "student_id": student.student_id,
                    "amount": amount,
                    "discount": discount,
                    "receipt_number": result.payment.receipt_number,
                    "paid_amount": result.student.paid_amount,
                    "due_amount": result.student.due_amount,
                },
            )
        )
        return result

    def list_payments(
        self,
        scope: EffectiveScope,
        *,
        student_id: Any = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[Payment]:
        collected_by = None
        if scope.role == Role.STUDENT:
            sid: Optional[int] = scope.require_subject()
        else:
            raw = student_id if student_id is not None else scope.subject_id
            sid = self._student(scope.tenant_id, raw).student_id if raw is not None else None
            if scope.role == Role.STAFF:
                collected_by = scope.principal_id

        offset = (page - 1) * limit
        items = self._payments.list_payments(
            scope.tenant_id, student_id=sid, collected_by=collected_by, limit=limit, offset=offset
        )
        total = self._payments.count_payments(scope.tenant_id, student_id=sid, collected_by=collected_by)
        return Page(items=list(items), page=page, limit=limit, total=total)

    def fee_status(self, scope: EffectiveScope, *, today: Optional[date] = None) -> FeeStatus:
        # students are pinned to themselves by the guard; staff and admins name the student
        student = self._student(scope.tenant_id, scope.require_subject())

        today = today or self._clock().date()
        due_date, due_amount = next_due(
            student.admission_date,
            self._payments.paid_cycles(scope.tenant_id, student.student_id),
            today,
            student.monthly_fees,
        )
        recent = self._payments.list_payments(
            scope.tenant_id, student_id=student.student_id, limit=RECENT_PAYMENTS_LIMIT, offset=0
        )
        return FeeStatus(
            student=student,
            months_since_admission=months_since_admission(student.admission_date, today)
            if student.admission_date
            else 0,
            next_due_date=due_date,
            next_due_amount=due_amount,
            recent_payments=tuple(recent),
        )
