from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import PaymentMode
from .model import BillingCycle, NewPayment, Payment, PaymentResult


class PaymentRepository(Protocol):
    def record_payment(self, new: NewPayment, *, branch_code: str) -> PaymentResult:
        """Allocate the receipt, append the payment and move the student's balances as one unit.

        Idempotency keys are scoped to the student. A known key returns the
        stored payment with replayed=True and leaves the balances untouched,
        or raises IdempotencyKeyReusedError when the stored payment differs in
        amount, discount or mode. Raises InactiveSubjectError if the student
        is no longer ACTIVE when the balance update runs.
        """

        raise NotImplementedError

    def list_payments(
        self,
        tenant_id: int,
        *,
        student_id: Optional[int] = None,
        collected_by: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[Payment]:
        """Newest first."""

        raise NotImplementedError

    def count_payments(
        self,
        tenant_id: int,
        *,
        student_id: Optional[int] = None,
        collected_by: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def paid_cycles(self, tenant_id: int, student_id: int) -> set[BillingCycle]:
        raise NotImplementedError

    def report_rows(
        self,
        tenant_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        student_id: Optional[int] = None,
        payment_mode: Optional[PaymentMode] = None,
    ) -> Sequence[Payment]:
        """Payments created on days in [start, end], newest first. Open bounds are unbounded."""

        raise NotImplementedError
