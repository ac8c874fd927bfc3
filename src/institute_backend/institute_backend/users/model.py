from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import Role, SalaryType, StudentStatus


@dataclass(frozen=True)
class Branch:
    """Tenant: no entity is shared across branches."""

    tenant_id: int
    code: str
    name: str


@dataclass(frozen=True)
class Principal:
    """Domain entity: any authenticated actor.

    Note: pure data object (no DB access). For students `is_active` already
    folds in the student status (only ACTIVE students may sign in).
    """

    principal_id: int
    tenant_id: int
    role: Role
    email: str
    display_name: str
    credential_hash: str
    is_active: bool = True
    student_code: Optional[str] = None
    staff_code: Optional[str] = None


@dataclass(frozen=True)
class Student:
    student_id: int
    tenant_id: int
    student_code: str
    name: str
    status: StudentStatus
    admission_date: Optional[date]
    monthly_fees: Decimal
    total_fees: Decimal
    paid_amount: Decimal
    due_amount: Decimal
    last_payment_date: Optional[datetime] = None
    batch_time: Optional[str] = None
    course_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.status == StudentStatus.ACTIVE


@dataclass(frozen=True)
class SalaryPolicy:
    salary_type: SalaryType
    rate: Decimal


@dataclass(frozen=True)
class Staff:
    staff_id: int
    tenant_id: int
    staff_code: str
    name: str
    salary_policy: SalaryPolicy
    is_active: bool = True
