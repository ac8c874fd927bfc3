from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional, Sequence, Union

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..attendance.streaks import attendance_percentage, consecutive_absent_days
from ..common.datetime_utils import add_months, now_local
from ..core.enums import AttendanceStatus, FollowUpStatus, ResultStatus, Role, StudentStatus, SubjectKind
from ..core.exceptions import SubjectNotFoundError, ValidationError
from ..exams.repository import ExamRepository
from ..fees.billing import months_since_admission
from ..fees.model import BillingCycle
from ..fees.repository import PaymentRepository
from ..followups.repository import FollowUpRepository
from ..tenancy.guard import EffectiveScope
from ..users.model import Student
from ..users.repository import StudentRepository
from .eligibility import due_statuses, is_certificate_eligible, is_exam_eligible, is_high_due
from .thresholds import AlertThresholds


PRIORITY_URGENT = "URGENT"
PRIORITY_HIGH = "HIGH"
PRIORITY_LOW = "LOW"


@dataclass(frozen=True)
class Alert:
    type: str
    message: str
    priority: str
    action_required: bool
    amount: Optional[Decimal] = None
    days_overdue: Optional[int] = None


@dataclass(frozen=True)
class DashboardAlert:
    type: str
    message: str
    count: int


@dataclass(frozen=True)
class Eligibility:
    attendance_percentage: Union[int, float]
    present: int
    total: int
    exam_eligible: bool
    certificate_eligible: bool
    results_count: int
    all_passed: bool
    high_due: bool
    exam_threshold: int
    certificate_threshold: int


@dataclass(frozen=True)
class AbsentStudent:
    student: Student
    consecutive_absent_days: Optional[int] = None
    drop_risk: bool = False


@dataclass(frozen=True)
class AbsentStudents:
    on: date
    students: Sequence[AbsentStudent]

    @property
    def total(self) -> int:
        return len(self.students)


@dataclass(frozen=True)
class DashboardSummary:
    role: Role
    student_counts: dict[StudentStatus, int]
    high_due_count: int
    dropped_count: int
    pending_count: int
    total_due: Decimal
    today_absent_count: int
    consecutive_absent_count: int
    alerts: Sequence[DashboardAlert] = field(default_factory=tuple)
    pending_follow_ups: Optional[int] = None
    self_attendance: Optional[AttendanceRecord] = None


class AlertService:
    """Derived, never persisted: every figure is recomputed per request."""

    def __init__(
        self,
        students: StudentRepository,
        attendance: AttendanceRepository,
        payments: PaymentRepository,
        exams: ExamRepository,
        followups: FollowUpRepository,
        *,
        thresholds: Optional[AlertThresholds] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._students = students
        self._attendance = attendance
        self._payments = payments
        self._exams = exams
        self._followups = followups
        self._thresholds = thresholds or AlertThresholds()
        self._clock = clock

    @property
    def thresholds(self) -> AlertThresholds:
        return self._thresholds

    def _student(self, scope: EffectiveScope) -> Student:
        student = self._students.get(scope.tenant_id, scope.require_subject())
        if not student:
            raise SubjectNotFoundError("Student not found")
        return student

    def _late_payment_days(self, student: Student, today: date) -> Optional[int]:
        """Days the current cycle's payment is overdue, or None when it is paid or not yet due."""
        if not student.admission_date or student.admission_date > today:
            return None
        current = BillingCycle.for_date(today)
        if current in self._payments.paid_cycles(student.tenant_id, student.student_id):
            return None
        due_on = add_months(student.admission_date, months_since_admission(student.admission_date, today))
        return (today - due_on).days

    def student_alerts(self, scope: EffectiveScope, *, today: Optional[date] = None) -> list[Alert]:
        student = self._student(scope)
        today = today or self._clock().date()
        alerts: list[Alert] = []

        if student.due_amount > 0:
            alerts.append(
                Alert(
                    type="DUE_FEES_WARNING",
                    message=f"You have {student.due_amount} due. Please pay to avoid service interruption.",
                    priority=PRIORITY_HIGH,
                    action_required=True,
                    amount=student.due_amount,
                )
            )

        days_overdue = self._late_payment_days(student, today)
        if days_overdue is not None and days_overdue > self._thresholds.late_payment_grace_days:
            alerts.append(
                Alert(
                    type="LATE_PAYMENT_NOTICE",
                    message=f"Payment for {BillingCycle.for_date(today).label} is overdue by {days_overdue} days.",
                    priority=PRIORITY_HIGH,
                    action_required=True,
                    days_overdue=days_overdue,
                )
            )

        if student.due_amount > 0 and self._exams.count_upcoming(scope.tenant_id, from_date=today) > 0:
            alerts.append(
                Alert(
                    type="EXAM_BLOCKED",
                    message="Exams are blocked due to pending fees. Please clear dues to appear in exams.",
                    priority=PRIORITY_URGENT,
                    action_required=True,
                )
            )

        alerts.append(
            Alert(
                type="CLASS_REMINDER",
                message="Regular attendance is required for course completion.",
                priority=PRIORITY_LOW,
                action_required=False,
            )
        )
        return alerts

    def eligibility(self, scope: EffectiveScope) -> Eligibility:
        student = self._student(scope)
        counts = self._attendance.count_by_status(scope.tenant_id, SubjectKind.STUDENT, student.student_id)
        total = sum(counts.values())
        present = counts.get(AttendanceStatus.PRESENT, 0)
        percentage = attendance_percentage(present, total)
        results = list(self._exams.results_for_student(scope.tenant_id, student.student_id))
        t = self._thresholds
        return Eligibility(
            attendance_percentage=percentage,
            present=present,
            total=total,
            exam_eligible=is_exam_eligible(percentage, t.exam_eligibility),
            certificate_eligible=is_certificate_eligible(percentage, results, t.certificate_attendance),
            results_count=len(results),
            all_passed=bool(results) and all(r.status == ResultStatus.PASS for r in results),
            high_due=is_high_due(student.due_amount, t.high_due),
            exam_threshold=t.exam_eligibility,
            certificate_threshold=t.certificate_attendance,
        )

    def absent_students(
        self,
        scope: EffectiveScope,
        *,
        on: Optional[date] = None,
        consecutive_days: int = 0,
    ) -> AbsentStudents:
        """Active students not marked Present on `on`.

        With consecutive_days > 0 only students whose absence run ending on `on`
        is at least that long are kept, each flagged when the run reaches the
        drop-risk window.
        """

        if consecutive_days < 0:
            raise ValidationError("Consecutive days must be >= 0")
        on = on or self._clock().date()
        present = self._attendance.subject_ids_with_status(
            scope.tenant_id, SubjectKind.STUDENT, on, (AttendanceStatus.PRESENT,)
        )
        active = self._students.list_by_status(scope.tenant_id, StudentStatus.ACTIVE)
        absent = [s for s in active if s.student_id not in present]
        if consecutive_days == 0:
            return AbsentStudents(on=on, students=[AbsentStudent(student=s) for s in absent])

        window = max(consecutive_days, self._thresholds.drop_risk_window)
        start = on - timedelta(days=window - 1)
        result = []
        for s in absent:
            records = self._attendance.list_for_subject(
                scope.tenant_id, SubjectKind.STUDENT, s.student_id, start=start, end=on
            )
            run = consecutive_absent_days(records, on, window)
            if run >= consecutive_days:
                result.append(
                    AbsentStudent(
                        student=s,
                        consecutive_absent_days=run,
                        drop_risk=run >= self._thresholds.drop_risk_window,
                    )
                )
        return AbsentStudents(on=on, students=result)

    def dashboard_summary(self, scope: EffectiveScope, *, today: Optional[date] = None) -> DashboardSummary:
        today = today or self._clock().date()
        t = self._thresholds
        counts = self._students.count_by_status(scope.tenant_id)
        high_due = self._students.count_due_above(
            scope.tenant_id, threshold=t.high_due, statuses=(StudentStatus.ACTIVE,)
        )
        total_due = self._students.sum_due(scope.tenant_id, statuses=due_statuses(t.count_inactive_dues))
        dropped = counts.get(StudentStatus.DROPPED, 0)
        pending = counts.get(StudentStatus.PENDING, 0)

        today_absent = self.absent_students(scope, on=today)
        streaks = self.absent_students(scope, on=today, consecutive_days=t.consecutive_absence_window)

        alerts: list[DashboardAlert] = []
        if high_due:
            alerts.append(DashboardAlert("HIGH_DUE", f"{high_due} student(s) have high due amounts", high_due))
        if streaks.total:
            alerts.append(
                DashboardAlert(
                    "CONSECUTIVE_ABSENT",
                    f"{streaks.total} student(s) absent for {t.consecutive_absence_window}+ consecutive days",
                    streaks.total,
                )
            )
        if scope.role == Role.ADMIN:
            if dropped:
                alerts.append(DashboardAlert("DROPPED_STUDENT", f"{dropped} student(s) have dropped", dropped))
            if pending:
                alerts.append(
                    DashboardAlert("PENDING_APPROVAL", f"{pending} student(s) pending approval", pending)
                )
            return DashboardSummary(
                role=scope.role,
                student_counts=counts,
                high_due_count=high_due,
                dropped_count=dropped,
                pending_count=pending,
                total_due=total_due,
                today_absent_count=today_absent.total,
                consecutive_absent_count=streaks.total,
                alerts=tuple(alerts),
            )

        self_record = self._attendance.get_for_subject_and_date(
            scope.tenant_id, SubjectKind.STAFF, scope.principal_id, today, time_slot=""
        )
        return DashboardSummary(
            role=scope.role,
            student_counts=counts,
            high_due_count=high_due,
            dropped_count=dropped,
            pending_count=pending,
            total_due=total_due,
            today_absent_count=today_absent.total,
            consecutive_absent_count=streaks.total,
            alerts=tuple(alerts),
            pending_follow_ups=self._followups.count_for_staff(
                scope.tenant_id, scope.principal_id, status=FollowUpStatus.PENDING
            ),
            self_attendance=self_record,
        )
