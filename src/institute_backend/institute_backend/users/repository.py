from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import Role, SalaryType, StudentStatus
from .model import Branch, Principal, Staff, Student


class BranchRepository(Protocol):
    def get(self, tenant_id: int) -> Optional[Branch]:
        raise NotImplementedError


class PrincipalRepository(Protocol):
    """Repository interface for principals of every role.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, principal_id: int) -> Optional[Principal]:
        raise NotImplementedError

    def get_by_email(self, role: Role, email: str) -> Optional[Principal]:
        raise NotImplementedError

    def update_credential(self, principal_id: int, *, credential_hash: str) -> bool:
        raise NotImplementedError

    def set_active(self, tenant_id: int, principal_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError


class StudentRepository(Protocol):
    def get(self, tenant_id: int, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def create(
        self,
        *,
        tenant_id: int,
        branch_code: str,
        name: str,
        email: str,
        credential_hash: str,
        admission_date: date,
        monthly_fees: Decimal,
        total_fees: Decimal,
        batch_time: Optional[str] = None,
        course_id: Optional[int] = None,
    ) -> Student:
        """Create principal + student rows; the student code is allocated per branch."""

        raise NotImplementedError

    def set_status(self, tenant_id: int, student_id: int, *, status: StudentStatus) -> bool:
        raise NotImplementedError

    def list_by_status(self, tenant_id: int, status: StudentStatus) -> Sequence[Student]:
        raise NotImplementedError

    def count_by_status(self, tenant_id: int) -> dict[StudentStatus, int]:
        raise NotImplementedError

    def count_due_above(self, tenant_id: int, *, threshold: Decimal, statuses: Iterable[StudentStatus]) -> int:
        raise NotImplementedError

    def sum_due(self, tenant_id: int, *, statuses: Iterable[StudentStatus]) -> Decimal:
        raise NotImplementedError


class StaffRepository(Protocol):
    def get(self, tenant_id: int, staff_id: int) -> Optional[Staff]:
        raise NotImplementedError

    def list_active(self, tenant_id: int) -> Sequence[Staff]:
        raise NotImplementedError

    def create(
        self,
        *,
        tenant_id: int,
        branch_code: str,
        name: str,
        email: str,
        credential_hash: str,
        salary_type: SalaryType,
        salary_rate: Decimal,
    ) -> Staff:
        raise NotImplementedError
