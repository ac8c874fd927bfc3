from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceMethod, AttendanceOutcome, AttendanceStatus, SubjectKind

NO_TIME_SLOT = ""


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance mark.

    Unique per (tenant, subject kind, subject, date, time slot); an unslotted
    record uses the empty time slot.
    """

    record_id: int
    tenant_id: int
    subject_id: int
    subject_kind: SubjectKind
    attendance_date: date
    status: AttendanceStatus
    method: AttendanceMethod
    marked_by: int
    time_slot: str = NO_TIME_SLOT
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    batch_id: Optional[int] = None


@dataclass(frozen=True)
class NewAttendance:
    """Write-model for insert-if-absent."""

    tenant_id: int
    subject_id: int
    subject_kind: SubjectKind
    attendance_date: date
    status: AttendanceStatus
    method: AttendanceMethod
    marked_by: int
    time_slot: str = NO_TIME_SLOT
    check_in: Optional[datetime] = None
    batch_id: Optional[int] = None


@dataclass(frozen=True)
class AttendanceResult:
    """Outcome of an attendance mutation; conflicts carry the existing record."""

    outcome: AttendanceOutcome
    record: AttendanceRecord

    @property
    def ok(self) -> bool:
        return self.outcome not in (AttendanceOutcome.ALREADY_CHECKED_OUT, AttendanceOutcome.DUPLICATE_ATTENDANCE)

    @property
    def is_conflict(self) -> bool:
        return not self.ok


@dataclass(frozen=True)
class AttendanceStats:
    total: int
    present: int
    absent: int
    late: int
    percentage: int
    exam_eligible: bool


@dataclass(frozen=True)
class AttendanceReportRow:
    """Read-model for branch reports: the record plus who it belongs to."""

    record: AttendanceRecord
    subject_code: str
    subject_name: str
