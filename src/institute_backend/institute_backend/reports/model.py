from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Union

from ..attendance.model import AttendanceReportRow
from ..core.enums import SubjectKind
from ..fees.model import Payment
from ..followups.model import FollowUp


@dataclass(frozen=True)
class AttendanceSummary:
    total_records: int
    present: int
    absent: int
    late: int
    percentage: Union[int, float]


@dataclass(frozen=True)
class AttendanceReport:
    kind: SubjectKind
    start: date
    end: date
    rows: Sequence[AttendanceReportRow]
    summary: AttendanceSummary


@dataclass(frozen=True)
class ModeTotal:
    count: int
    amount: Decimal


@dataclass(frozen=True)
class FeesSummary:
    """Gross is the sum of amounts; net is gross less discounts."""

    gross_amount: Decimal
    total_discount: Decimal
    net_collection: Decimal
    total_payments: int
    by_mode: dict[str, ModeTotal]


@dataclass(frozen=True)
class FeesReport:
    start: Optional[date]
    end: Optional[date]
    rows: Sequence[Payment]
    summary: FeesSummary


@dataclass(frozen=True)
class FollowUpSummary:
    total: int
    by_status: dict[str, int]
    by_reason: dict[str, int]


@dataclass(frozen=True)
class FollowUpReport:
    start: Optional[date]
    end: Optional[date]
    rows: Sequence[FollowUp]
    summary: FollowUpSummary
