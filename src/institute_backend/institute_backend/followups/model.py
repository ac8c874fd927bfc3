from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..core.enums import AbsenceReason, CallStatus, FollowUpStatus


@dataclass(frozen=True)
class FollowUp:
    follow_up_id: int
    tenant_id: int
    student_id: int
    staff_id: int
    absent_date: date
    call_status: CallStatus
    reason: AbsenceReason
    follow_up_status: FollowUpStatus = FollowUpStatus.PENDING
    reason_details: Optional[str] = None
    expected_return_date: Optional[date] = None
    remarks: Optional[str] = None
    next_follow_up_date: Optional[date] = None
    resolved_date: Optional[datetime] = None


@dataclass(frozen=True)
class FollowUpInput:
    """Raw create payload."""

    student_id: Any
    absent_date: Any
    call_status: Any
    reason: Any
    reason_details: Optional[str] = None
    expected_return_date: Any = None
    remarks: Optional[str] = None
    next_follow_up_date: Any = None


@dataclass(frozen=True)
class FollowUpPatch:
    """Raw update payload; None means "leave as is"."""

    call_status: Any = None
    reason: Any = None
    reason_details: Optional[str] = None
    expected_return_date: Any = None
    remarks: Optional[str] = None
    follow_up_status: Any = None
    next_follow_up_date: Any = None


@dataclass(frozen=True)
class AbsenceEntry:
    record: AttendanceRecord
    follow_ups: Sequence[FollowUp] = field(default_factory=tuple)
