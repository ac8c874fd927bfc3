from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..attendance.repository import AttendanceRepository
from ..audit.model import AuditEntry
from ..audit.recorder import MODULE_FOLLOW_UP, AuditRecorder
from ..common.datetime_utils import now_local
from ..common.pagination import Page
from ..common.validators import parse_date, parse_enum, require_positive_int
from ..core.enums import AbsenceReason, AttendanceStatus, CallStatus, FollowUpStatus, SubjectKind
from ..core.exceptions import NotFoundError, SubjectNotFoundError, ValidationError
from ..tenancy.guard import EffectiveScope
from ..users.repository import StudentRepository
from .model import AbsenceEntry, FollowUp, FollowUpInput, FollowUpPatch
from .repository import FollowUpRepository

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip() or None


class FollowUpService:
    """Absence follow-up calls: staff see and edit only the ones they logged."""

    def __init__(
        self,
        followups: FollowUpRepository,
        attendance: AttendanceRepository,
        students: StudentRepository,
        audit: AuditRecorder,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._followups = followups
        self._attendance = attendance
        self._students = students
        self._audit = audit
        self._clock = clock

    def create(self, scope: EffectiveScope, data: FollowUpInput) -> FollowUp:
        student_id = require_positive_int(data.student_id, "Student id")
        absent_date = parse_date(data.absent_date, "Absent date")
        call_status = parse_enum(CallStatus, data.call_status, "Call status")
        reason = parse_enum(AbsenceReason, data.reason, "Reason")

        if not self._students.get(scope.tenant_id, student_id):
            raise SubjectNotFoundError("Student not found or does not belong to your branch")

        absences = self._attendance.list_for_subject(
            scope.tenant_id,
            SubjectKind.STUDENT,
            student_id,
            start=absent_date,
            end=absent_date,
            status=AttendanceStatus.ABSENT,
            limit=1,
        )
        if not absences:
            raise ValidationError(f"Student was not marked absent on {absent_date.isoformat()}")

        follow_up = self._followups.create(
            FollowUp(
                follow_up_id=0,
                tenant_id=scope.tenant_id,
                student_id=student_id,
                staff_id=scope.principal_id,
                absent_date=absent_date,
                call_status=call_status,
                reason=reason,
                reason_details=_clean(data.reason_details),
                expected_return_date=parse_date(data.expected_return_date, "Expected return date", required=False),
                remarks=_clean(data.remarks),
                next_follow_up_date=parse_date(data.next_follow_up_date, "Next follow-up date", required=False),
            )
        )
        logger.info(
            "Follow-up %s logged by staff %s for student %s", follow_up.follow_up_id, scope.principal_id, student_id
        )
        self._audit.record(
            AuditEntry(
                tenant_id=scope.tenant_id,
                principal_id=scope.principal_id,
                role=scope.role,
                action="CREATE_FOLLOW_UP",
                module=MODULE_FOLLOW_UP,
                entity_id=str(follow_up.follow_up_id),
                new_data={
                    "student_id": student_id,
                    "absent_date": absent_date,
                    "call_status": call_status,
                    "reason": reason,
                },
            )
        )
        return follow_up

    def update(self, scope: EffectiveScope, follow_up_id: Any, patch: FollowUpPatch) -> FollowUp:
        fid = require_positive_int(follow_up_id, "Follow-up id")
        current = self._followups.get_for_staff(scope.tenant_id, fid, scope.principal_id)
        if not current:
            raise NotFoundError("Follow-up not found or access denied")

        changes: dict[str, Any] = {}
        if patch.call_status is not None:
            changes["call_status"] = parse_enum(CallStatus, patch.call_status, "Call status")
        if patch.reason is not None:
            changes["reason"] = parse_enum(AbsenceReason, patch.reason, "Reason")
        if patch.reason_details is not None:
            changes["reason_details"] = _clean(patch.reason_details)
        if patch.remarks is not None:
            changes["remarks"] = _clean(patch.remarks)
        if patch.expected_return_date is not None:
            changes["expected_return_date"] = parse_date(patch.expected_return_date, "Expected return date")
        if patch.next_follow_up_date is not None:
            changes["next_follow_up_date"] = parse_date(patch.next_follow_up_date, "Next follow-up date")
        if patch.follow_up_status is not None:
            status = parse_enum(FollowUpStatus, patch.follow_up_status, "Follow-up status")
            changes["follow_up_status"] = status
            if status == FollowUpStatus.RESOLVED:
                changes["resolved_date"] = self._clock()

        updated = dataclasses.replace(current, **changes)
        if not self._followups.update(updated):
            raise NotFoundError("Follow-up not found or access denied")

        self._audit.record(
            AuditEntry(
                tenant_id=scope.tenant_id,
                principal_id=scope.principal_id,
                role=scope.role,
                action="UPDATE_FOLLOW_UP",
                module=MODULE_FOLLOW_UP,
                entity_id=str(updated.follow_up_id),
                old_data=dataclasses.asdict(current),
                new_data=dataclasses.asdict(updated),
            )
        )
        return updated

    def list(
        self,
        scope: EffectiveScope,
        *,
        status: Any = None,
        student_id: Any = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[FollowUp]:
        status_filter = parse_enum(FollowUpStatus, status, "Follow-up status") if status else None
        sid = require_positive_int(student_id, "Student id") if student_id not in (None, "") else None
        items = self._followups.list_for_staff(
            scope.tenant_id,
            scope.principal_id,
            status=status_filter,
            student_id=sid,
            limit=limit,
            offset=(page - 1) * limit,
        )
        total = self._followups.count_for_staff(
            scope.tenant_id, scope.principal_id, status=status_filter, student_id=sid
        )
        return Page(items=list(items), page=page, limit=limit, total=total)

    def absence_history(
        self,
        scope: EffectiveScope,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Page[AbsenceEntry]:
        """A student's Absent records, each with the follow-up calls logged for that day."""
        student_id = scope.require_subject()
        records = self._attendance.list_for_subject(
            scope.tenant_id,
            SubjectKind.STUDENT,
            student_id,
            start=start,
            end=end,
            status=AttendanceStatus.ABSENT,
            limit=limit,
            offset=(page - 1) * limit,
        )
        counts = self._attendance.count_by_status(
            scope.tenant_id, SubjectKind.STUDENT, student_id, start=start, end=end
        )

        by_day: dict[date, list[FollowUp]] = {}
        for f in self._followups.list_for_student(scope.tenant_id, student_id, start=start, end=end):
            by_day.setdefault(f.absent_date, []).append(f)

        entries = [AbsenceEntry(record=r, follow_ups=tuple(by_day.get(r.attendance_date, ()))) for r in records]
        return Page(items=entries, page=page, limit=limit, total=counts.get(AttendanceStatus.ABSENT, 0))
