from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Optional

from ..audit.model import AuditEntry
from ..audit.recorder import MODULE_ATTENDANCE, AuditRecorder
from ..common.datetime_utils import now_local
from ..common.pagination import Page
from ..common.validators import optional_text, require_positive_int
from ..core.constants import EXAM_ELIGIBILITY_THRESHOLD, TIME_SLOT_MAX_LENGTH
from ..core.enums import (
    AttendanceMethod,
    AttendanceOutcome,
    AttendanceStatus,
    Role,
    SubjectKind,
)
from ..core.exceptions import IdentityMismatchError, SubjectNotFoundError, ValidationError
from ..tenancy.guard import EffectiveScope
from ..users.model import Student
from ..users.repository import StaffRepository, StudentRepository
from .model import NO_TIME_SLOT, AttendanceRecord, AttendanceResult, AttendanceStats, NewAttendance
from .qr import parse_qr_payload
from .repository import AttendanceRepository
from .streaks import attendance_percentage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkAttendance:
    """Input for marking one student's attendance."""

    student_id: Any
    status: AttendanceStatus = AttendanceStatus.PRESENT
    method: AttendanceMethod = AttendanceMethod.MANUAL
    attendance_date: Optional[date] = None
    time_slot: Any = None
    qr_payload: Any = None
    batch_id: Any = None


@dataclass(frozen=True)
class AttendanceListing:
    page: Page[AttendanceRecord]
    stats: AttendanceStats


class AttendanceLedger:
    """Staff two-phase self scan and student marking.

    Duplicates and repeated check-outs are returned as conflict results with
    the stored record, never raised.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        students: StudentRepository,
        staff: StaffRepository,
        audit: AuditRecorder,
        *,
        exam_threshold: int = EXAM_ELIGIBILITY_THRESHOLD,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._students = students
        self._staff = staff
        self._audit = audit
        self._exam_threshold = int(exam_threshold)
        self._clock = clock

    def _record_audit(self, scope: EffectiveScope, action: str, record: AttendanceRecord, new_data: dict) -> None:
        self._audit.record(
            AuditEntry(
                tenant_id=scope.tenant_id,
                principal_id=scope.principal_id,
                role=scope.role,
                action=action,
                module=MODULE_ATTENDANCE,
                entity_id=str(record.record_id),
                new_data=new_data,
            )
        )

    def staff_self_scan(self, scope: EffectiveScope, qr_payload: Any) -> AttendanceResult:
        staff = self._staff.get(scope.tenant_id, scope.principal_id)
        if not staff:
            raise SubjectNotFoundError("Staff not found")

        scanned = parse_qr_payload(qr_payload, "staffId")
        if scanned not in (str(staff.staff_id), staff.staff_code):
            logger.warning("Staff %s scanned a code for %r", staff.staff_id, scanned)
            raise IdentityMismatchError("QR code does not match your staff ID")

        now = self._clock()
        today = now.date()
        record = self._attendance.get_for_subject_and_date(
            scope.tenant_id, SubjectKind.STAFF, staff.staff_id, today, time_slot=NO_TIME_SLOT
        )
        if record is None:
            record, created = self._attendance.insert_if_absent(
                NewAttendance(
                    tenant_id=scope.tenant_id,
                    subject_id=staff.staff_id,
                    subject_kind=SubjectKind.STAFF,
                    attendance_date=today,
                    status=AttendanceStatus.PRESENT,
                    method=AttendanceMethod.QR,
                    marked_by=scope.principal_id,
                    check_in=now,
                )
            )
            if created:
                self._record_audit(scope, "CHECK_IN", record, {"check_in": now})
                return AttendanceResult(AttendanceOutcome.CHECKED_IN, record)

        if record.check_out is None and self._attendance.set_check_out(
            scope.tenant_id, record.record_id, check_out=now
        ):
            record = dataclasses.replace(record, check_out=now)
            self._record_audit(scope, "CHECK_OUT", record, {"check_out": now})
            return AttendanceResult(AttendanceOutcome.CHECKED_OUT, record)

        latest = self._attendance.get(scope.tenant_id, record.record_id) or record
        return AttendanceResult(AttendanceOutcome.ALREADY_CHECKED_OUT, latest)

    def _student_in_tenant(self, tenant_id: int, student_id: Any) -> Student:
        sid = require_positive_int(student_id, "Student id")
        student = self._students.get(tenant_id, sid)
        if not student:
            raise SubjectNotFoundError("Student not found or does not belong to your branch")
        return student

    def mark_student(self, scope: EffectiveScope, cmd: MarkAttendance) -> AttendanceResult:
        student = self._student_in_tenant(scope.tenant_id, cmd.student_id)
        slot = optional_text(cmd.time_slot, "Time slot", max_length=TIME_SLOT_MAX_LENGTH)
        batch_id = require_positive_int(cmd.batch_id, "Batch id") if cmd.batch_id not in (None, "") else None

        if cmd.method == AttendanceMethod.QR:
            scanned = parse_qr_payload(cmd.qr_payload, "studentId")
            if scanned not in (student.student_code, str(student.student_id)):
                raise IdentityMismatchError("QR code does not match student ID")

        now = self._clock()
        if cmd.time_slot is None:
            slot = student.batch_time or NO_TIME_SLOT
        record, created = self._attendance.insert_if_absent(
            NewAttendance(
                tenant_id=scope.tenant_id,
                subject_id=student.student_id,
                subject_kind=SubjectKind.STUDENT,
                attendance_date=cmd.attendance_date or now.date(),
                status=cmd.status,
                method=cmd.method,
                marked_by=scope.principal_id,
                time_slot=(slot or NO_TIME_SLOT).strip(),
                check_in=now if cmd.status != AttendanceStatus.ABSENT else None,
                batch_id=batch_id,
            )
        )
        if not created:
            logger.info("Attendance already marked for student %s on %s", student.student_id, record.attendance_date)
            return AttendanceResult(AttendanceOutcome.DUPLICATE_ATTENDANCE, record)

        self._record_audit(
            scope,
            "MARK_ATTENDANCE",
            record,
            {"student_id": student.student_id, "status": record.status, "method": record.method},
        )
        return AttendanceResult(AttendanceOutcome.MARKED, record)

    def _listing_subject(self, scope: EffectiveScope) -> tuple[SubjectKind, int]:
        if scope.role == Role.STUDENT:
            return SubjectKind.STUDENT, scope.require_subject()
        if scope.subject_id is not None:
            return SubjectKind.STUDENT, self._student_in_tenant(scope.tenant_id, scope.subject_id).student_id
        if scope.role == Role.STAFF:
            return SubjectKind.STAFF, scope.principal_id
        raise ValidationError("Student id is required")

    def list_attendance(
        self,
        scope: EffectiveScope,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        page: int = 1,
        limit: int = 30,
    ) -> AttendanceListing:
        if start and end and start > end:
            raise ValidationError("Start date must be on or before end date")
        kind, subject_id = self._listing_subject(scope)

        counts = self._attendance.count_by_status(scope.tenant_id, kind, subject_id, start=start, end=end)
        total = sum(counts.values())
        present = counts.get(AttendanceStatus.PRESENT, 0)
        percentage = attendance_percentage(present, total)
        stats = AttendanceStats(
            total=total,
            present=present,
            absent=counts.get(AttendanceStatus.ABSENT, 0),
            late=counts.get(AttendanceStatus.LATE, 0),
            percentage=percentage,
            exam_eligible=percentage >= self._exam_threshold,
        )

        offset = (page - 1) * limit
        items = self._attendance.list_for_subject(
            scope.tenant_id, kind, subject_id, start=start, end=end, limit=limit, offset=offset
        )
        return AttendanceListing(page=Page(items=list(items), page=page, limit=limit, total=total), stats=stats)

    def today_status(self, scope: EffectiveScope) -> Optional[AttendanceRecord]:
        """Staff member's own record for today, if any."""
        return self._attendance.get_for_subject_and_date(
            scope.tenant_id, SubjectKind.STAFF, scope.principal_id, self._clock().date(), time_slot=NO_TIME_SLOT
        )
