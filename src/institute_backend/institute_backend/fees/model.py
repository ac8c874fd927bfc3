from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from ..common.datetime_utils import month_name, month_number
from ..core.enums import PaymentMode
from ..users.model import Student


@dataclass(frozen=True, order=True)
class BillingCycle:
    """(month-name, year) bucket keying a monthly fee obligation."""

    year: int
    month: str

    @classmethod
    def for_date(cls, day: date) -> "BillingCycle":
        return cls(year=day.year, month=month_name(day.month))

    @classmethod
    def of(cls, month: str, year: int) -> "BillingCycle":
        return cls(year=int(year), month=month_name(month_number(month)))

    @property
    def label(self) -> str:
        return f"{self.month} {self.year}"


@dataclass(frozen=True)
class Payment:
    """Immutable payment record (append-only)."""

    payment_id: int
    tenant_id: int
    student_id: int
    amount: Decimal
    discount: Decimal
    payment_mode: PaymentMode
    receipt_number: str
    month: str
    year: int
    collected_by: int
    created_at: datetime
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    idempotency_key: Optional[str] = None

    @property
    def net_amount(self) -> Decimal:
        return max(Decimal("0.00"), self.amount - self.discount)


@dataclass(frozen=True)
class PaymentRequest:
    """Raw input; the fee ledger validates every field before any write."""

    amount: Any
    student_id: Any = None
    discount: Any = 0
    payment_mode: Any = PaymentMode.CASH
    month: Optional[str] = None
    year: Any = None
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    idempotency_key: Optional[str] = None


@dataclass(frozen=True)
class NewPayment:
    """Validated write-model handed to the repository."""

    tenant_id: int
    student_id: int
    amount: Decimal
    discount: Decimal
    payment_mode: PaymentMode
    month: str
    year: int
    collected_by: int
    paid_at: datetime
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    idempotency_key: Optional[str] = None

    @property
    def net_amount(self) -> Decimal:
        return max(Decimal("0.00"), self.amount - self.discount)

    def matches(self, payment: Payment) -> bool:
        """True when a stored payment is the same request retried."""
        return (
            payment.student_id == self.student_id
            and payment.amount == self.amount
            and payment.discount == self.discount
            and payment.payment_mode == self.payment_mode
        )


@dataclass(frozen=True)
class PaymentResult:
    """Receipt plus the student's ledger state after it was applied.

    `replayed` marks a retried request answered with the original receipt.
    """

    payment: Payment
    student: Student
    replayed: bool = False


@dataclass(frozen=True)
class FeeStatus:
    student: Student
    months_since_admission: int
    next_due_date: Optional[date]
    next_due_amount: Decimal
    recent_payments: Sequence[Payment] = field(default_factory=tuple)
