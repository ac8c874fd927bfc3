from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import AbsenceReason, FollowUpStatus
from .model import FollowUp


class FollowUpRepository(Protocol):
    def create(self, follow_up: FollowUp) -> FollowUp:
        """Persist; the returned copy carries the new id."""

        raise NotImplementedError

    def get_for_staff(self, tenant_id: int, follow_up_id: int, staff_id: int) -> Optional[FollowUp]:
        raise NotImplementedError

    def update(self, follow_up: FollowUp) -> bool:
        """Update a follow-up in place, matched on id, tenant and creating staff member."""

        raise NotImplementedError

    def list_for_staff(
        self,
        tenant_id: int,
        staff_id: int,
        *,
        status: Optional[FollowUpStatus] = None,
        student_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[FollowUp]:
        raise NotImplementedError

    def count_for_staff(
        self,
        tenant_id: int,
        staff_id: int,
        *,
        status: Optional[FollowUpStatus] = None,
        student_id: Optional[int] = None,
    ) -> int:
        raise NotImplementedError

    def list_for_student(
        self,
        tenant_id: int,
        student_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[FollowUp]:
        raise NotImplementedError

    def report_rows(
        self,
        tenant_id: int,
        staff_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[FollowUpStatus] = None,
        reason: Optional[AbsenceReason] = None,
    ) -> Sequence[FollowUp]:
        """One staff member's follow-ups with absent_date in [start, end], newest first."""

        raise NotImplementedError
