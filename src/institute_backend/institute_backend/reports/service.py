from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from ..attendance.repository import AttendanceRepository
from ..attendance.streaks import attendance_percentage
from ..common.datetime_utils import now_local
from ..common.validators import parse_date, parse_enum, require_positive_int
from ..core.enums import AbsenceReason, AttendanceStatus, FollowUpStatus, PaymentMode, Role, SubjectKind
from ..core.exceptions import OperationNotPermittedError, ValidationError
from ..fees.repository import PaymentRepository
from ..followups.repository import FollowUpRepository
from ..tenancy.guard import EffectiveScope
from .model import (
    AttendanceReport,
    AttendanceSummary,
    FeesReport,
    FeesSummary,
    FollowUpReport,
    FollowUpSummary,
    ModeTotal,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _range(start: Any, end: Any) -> tuple[Optional[date], Optional[date]]:
    start_d = parse_date(start, "start_date", required=False)
    end_d = parse_date(end, "end_date", required=False)
    if start_d and end_d and start_d > end_d:
        raise ValidationError("start_date must not be after end_date")
    return start_d, end_d


def _optional_id(value: Any, field_name: str) -> Optional[int]:
    return require_positive_int(value, field_name) if value not in (None, "") else None


class ReportService:
    """Branch-level summaries over the attendance, payment and follow-up ledgers."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        payments: PaymentRepository,
        followups: FollowUpRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._payments = payments
        self._followups = followups
        self._clock = clock

    def attendance_report(
        self,
        scope: EffectiveScope,
        *,
        kind: Any,
        start: Any = None,
        end: Any = None,
        batch_id: Any = None,
    ) -> AttendanceReport:
        """Records of one subject kind between start and end.

        Dates default to the first of the current month and today. The subject
        filter comes from the scope; staff may only report on students.
        """
        subject_kind = parse_enum(SubjectKind, kind, "Report type")
        if scope.role == Role.STAFF and subject_kind != SubjectKind.STUDENT:
            raise OperationNotPermittedError("Staff can only report on student attendance")

        today = self._clock().date()
        start_d = parse_date(start, "start_date", required=False) or today.replace(day=1)
        end_d = parse_date(end, "end_date", required=False) or today
        if start_d > end_d:
            raise ValidationError("start_date must not be after end_date")

        rows = list(
            self._attendance.report_rows(
                scope.tenant_id,
                subject_kind,
                start=start_d,
                end=end_d,
                subject_id=scope.subject_id,
                batch_id=_optional_id(batch_id, "Batch id"),
            )
        )
        counts = Counter(r.record.status for r in rows)
        summary = AttendanceSummary(
            total_records=len(rows),
            present=counts[AttendanceStatus.PRESENT],
            absent=counts[AttendanceStatus.ABSENT],
            late=counts[AttendanceStatus.LATE],
            percentage=attendance_percentage(counts[AttendanceStatus.PRESENT], len(rows)),
        )
        logger.info(
            "Attendance report branch=%s kind=%s %s..%s rows=%d",
            scope.tenant_id, subject_kind.value, start_d, end_d, len(rows),
        )
        return AttendanceReport(kind=subject_kind, start=start_d, end=end_d, rows=rows, summary=summary)

    def fees_report(
        self,
        scope: EffectiveScope,
        *,
        start: Any = None,
        end: Any = None,
        payment_mode: Any = None,
    ) -> FeesReport:
        start_d, end_d = _range(start, end)
        mode = parse_enum(PaymentMode, payment_mode, "Payment mode") if payment_mode else None
        rows = list(
            self._payments.report_rows(
                scope.tenant_id, start=start_d, end=end_d, student_id=scope.subject_id, payment_mode=mode
            )
        )

        by_mode = {m.value: ModeTotal(count=0, amount=ZERO) for m in PaymentMode}
        gross = discount = ZERO
        for p in rows:
            gross += p.amount
            discount += p.discount
            current = by_mode[p.payment_mode.value]
            by_mode[p.payment_mode.value] = ModeTotal(count=current.count + 1, amount=current.amount + p.net_amount)

        summary = FeesSummary(
            gross_amount=gross,
            total_discount=discount,
            net_collection=sum((p.net_amount for p in rows), ZERO),
            total_payments=len(rows),
            by_mode=by_mode,
        )
        return FeesReport(start=start_d, end=end_d, rows=rows, summary=summary)

    def follow_up_report(
        self,
        scope: EffectiveScope,
        *,
        start: Any = None,
        end: Any = None,
        status: Any = None,
        reason: Any = None,
    ) -> FollowUpReport:
        """The calling staff member's follow-ups, filtered on absent date."""
        start_d, end_d = _range(start, end)
        rows = list(
            self._followups.report_rows(
                scope.tenant_id,
                scope.principal_id,
                start=start_d,
                end=end_d,
                status=parse_enum(FollowUpStatus, status, "Follow-up status") if status else None,
                reason=parse_enum(AbsenceReason, reason, "Reason") if reason else None,
            )
        )
        statuses = Counter(f.follow_up_status for f in rows)
        summary = FollowUpSummary(
            total=len(rows),
            by_status={s.value: statuses[s] for s in FollowUpStatus},
            by_reason=dict(Counter(f.reason.value for f in rows)),
        )
        return FollowUpReport(start=start_d, end=end_d, rows=rows, summary=summary)
