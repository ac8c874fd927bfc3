from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, SubjectKind
from .model import AttendanceRecord, AttendanceReportRow, NewAttendance


class AttendanceRepository(Protocol):
    def insert_if_absent(self, new: NewAttendance) -> tuple[AttendanceRecord, bool]:
        """Atomic create; returns (record, created). On a key clash the stored record comes back."""

        raise NotImplementedError

    def get_for_subject_and_date(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        attendance_date: date,
        *,
        time_slot: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def set_check_out(self, tenant_id: int, record_id: int, *, check_out: datetime) -> bool:
        """Stamp check-out only if it is still empty; False when someone got there first."""

        raise NotImplementedError

    def get(self, tenant_id: int, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_subject(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        """Newest first."""

        raise NotImplementedError

    def count_by_status(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict[AttendanceStatus, int]:
        raise NotImplementedError

    def subject_ids_with_status(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        attendance_date: date,
        statuses: Iterable[AttendanceStatus],
    ) -> set[int]:
        raise NotImplementedError

    def report_rows(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        *,
        start: date,
        end: date,
        subject_id: Optional[int] = None,
        batch_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        """Every record of one subject kind in [start, end], newest first."""

        raise NotImplementedError
