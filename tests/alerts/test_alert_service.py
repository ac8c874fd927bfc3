from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from src.institute_backend.institute_backend.alerts.service import AlertService
from src.institute_backend.institute_backend.alerts.thresholds import AlertThresholds
from src.institute_backend.institute_backend.core.enums import (
    AbsenceReason,
    AttendanceStatus,
    CallStatus,
    Operation,
    ResultStatus,
    StudentStatus,
    SubjectKind,
)
from src.institute_backend.institute_backend.core.exceptions import ValidationError
from src.institute_backend.institute_backend.fees.model import Payment
from src.institute_backend.institute_backend.followups.model import FollowUp

TODAY = date(2025, 3, 10)


def _service(world, **thresholds):
    return AlertService(
        world.students,
        world.attendance,
        world.payments,
        world.exams,
        world.followups,
        thresholds=AlertThresholds(**thresholds),
        clock=world.clock,
    )


def _types(alerts):
    return [a.type for a in alerts]


def _paid(world, student, month, year):
    world.payments.rows.append(
        Payment(
            payment_id=len(world.payments.rows) + 1,
            tenant_id=student.tenant_id,
            student_id=student.principal_id,
            amount=Decimal("1000"),
            discount=Decimal("0"),
            payment_mode="CASH",
            receipt_number=f"R-{len(world.payments.rows) + 1}",
            month=month,
            year=year,
            collected_by=1,
            created_at=world.clock.now,
        )
    )


def test_due_student_with_upcoming_exam_is_blocked(world):
    student = world.add_student(total_fees="8000", paid="2000")
    world.exams.add_exam(1, TODAY + timedelta(days=14))

    alerts = _service(world).student_alerts(world.scope(student, Operation.VIEW_ALERTS), today=TODAY)

    assert _types(alerts) == ["DUE_FEES_WARNING", "EXAM_BLOCKED", "CLASS_REMINDER"]
    assert alerts[0].amount == Decimal("6000")
    assert alerts[1].priority == "URGENT"


def test_paid_up_student_only_gets_the_reminder(world):
    student = world.add_student(total_fees="8000", paid="8000")
    world.exams.add_exam(1, TODAY + timedelta(days=14))
    alerts = _service(world).student_alerts(world.scope(student, Operation.VIEW_ALERTS), today=TODAY)
    assert _types(alerts) == ["CLASS_REMINDER"]


def test_past_or_inactive_exams_do_not_block(world):
    student = world.add_student(total_fees="8000")
    world.exams.add_exam(1, TODAY - timedelta(days=1))
    world.exams.add_exam(1, TODAY + timedelta(days=3), is_active=False)
    world.exams.add_exam(2, TODAY + timedelta(days=3))
    alerts = _service(world).student_alerts(world.scope(student, Operation.VIEW_ALERTS), today=TODAY)
    assert "EXAM_BLOCKED" not in _types(alerts)


def test_late_payment_notice_after_grace_period(world):
    student = world.add_student(admission_date=date(2025, 1, 1))
    scope = world.scope(student, Operation.VIEW_ALERTS)

    alerts = _service(world).student_alerts(scope, today=TODAY)
    [late] = [a for a in alerts if a.type == "LATE_PAYMENT_NOTICE"]
    assert late.days_overdue == 9

    assert "LATE_PAYMENT_NOTICE" not in _types(_service(world).student_alerts(scope, today=date(2025, 3, 5)))

    _paid(world, student, "March", 2025)
    assert "LATE_PAYMENT_NOTICE" not in _types(_service(world).student_alerts(scope, today=TODAY))


def test_eligibility(world):
    student = world.add_student()
    sid = student.principal_id
    for offset, status in enumerate([AttendanceStatus.PRESENT] * 3 + [AttendanceStatus.ABSENT]):
        world.attendance.seed(1, SubjectKind.STUDENT, sid, TODAY - timedelta(days=offset), status)
    scope = world.scope(student, Operation.VIEW_ELIGIBILITY)

    e = _service(world).eligibility(scope)
    assert (e.attendance_percentage, e.present, e.total) == (75, 3, 4)
    assert e.exam_eligible
    assert not e.certificate_eligible
    assert e.high_due

    world.exams.add_result(1, sid, ResultStatus.PASS)
    assert _service(world).eligibility(scope).certificate_eligible
    assert not _service(world, certificate_attendance=80).eligibility(scope).certificate_eligible

    world.exams.add_result(1, sid, ResultStatus.FAIL)
    e = _service(world).eligibility(scope)
    assert not e.certificate_eligible
    assert not e.all_passed
    assert e.results_count == 2


def test_eligibility_high_due_follows_threshold(world):
    student = world.add_student(total_fees="6000", paid="1000")
    scope = world.scope(student, Operation.VIEW_ELIGIBILITY)

    assert not _service(world).eligibility(scope).high_due
    assert _service(world, high_due=Decimal("4999.99")).eligibility(scope).high_due


def test_absent_students_today_and_streaks(world):
    admin = world.add_admin()
    present = world.add_student()
    streak = world.add_student()
    long_streak = world.add_student()
    unmarked = world.add_student()
    world.add_student(status=StudentStatus.INACTIVE)

    world.attendance.seed(1, SubjectKind.STUDENT, present.principal_id, TODAY)
    for offset in range(3):
        world.attendance.seed(
            1, SubjectKind.STUDENT, streak.principal_id, TODAY - timedelta(days=offset), AttendanceStatus.ABSENT
        )
    for offset in range(6):
        world.attendance.seed(
            1, SubjectKind.STUDENT, long_streak.principal_id, TODAY - timedelta(days=offset), AttendanceStatus.ABSENT
        )

    service = _service(world)
    scope = world.scope(admin, Operation.LIST_ABSENT_STUDENTS)

    today = service.absent_students(scope, on=TODAY)
    assert {a.student.student_id for a in today.students} == {
        streak.principal_id,
        long_streak.principal_id,
        unmarked.principal_id,
    }

    runs = service.absent_students(scope, on=TODAY, consecutive_days=3)
    by_id = {a.student.student_id: a for a in runs.students}
    assert set(by_id) == {streak.principal_id, long_streak.principal_id}
    assert (by_id[streak.principal_id].consecutive_absent_days, by_id[streak.principal_id].drop_risk) == (3, False)
    assert (by_id[long_streak.principal_id].consecutive_absent_days, by_id[long_streak.principal_id].drop_risk) == (
        5,
        True,
    )

    with pytest.raises(ValidationError):
        service.absent_students(scope, on=TODAY, consecutive_days=-1)


def test_admin_dashboard(world):
    admin = world.add_admin()
    world.add_student(total_fees="9000")
    world.add_student(total_fees="1000")
    world.add_student(status=StudentStatus.DROPPED, total_fees="7000")
    world.add_student(status=StudentStatus.PENDING, total_fees="2000")
    scope = world.scope(admin, Operation.VIEW_DASHBOARD)

    summary = _service(world).dashboard_summary(scope, today=TODAY)

    assert summary.high_due_count == 1
    assert summary.total_due == Decimal("10000")
    assert (summary.dropped_count, summary.pending_count) == (1, 1)
    assert summary.today_absent_count == 2
    assert [a.type for a in summary.alerts] == ["HIGH_DUE", "DROPPED_STUDENT", "PENDING_APPROVAL"]
    assert summary.pending_follow_ups is None

    everyone = _service(world, count_inactive_dues=True).dashboard_summary(scope, today=TODAY)
    assert everyone.total_due == Decimal("19000")


def test_staff_dashboard(world):
    staff = world.add_staff()
    student = world.add_student()
    world.attendance.seed(1, SubjectKind.STAFF, staff.principal_id, TODAY)
    world.attendance.seed(1, SubjectKind.STUDENT, student.principal_id, TODAY, AttendanceStatus.ABSENT)
    world.followups.create(
        FollowUp(
            follow_up_id=0,
            tenant_id=1,
            student_id=student.principal_id,
            staff_id=staff.principal_id,
            absent_date=TODAY,
            call_status=CallStatus.NO_ANSWER,
            reason=AbsenceReason.OTHER,
        )
    )

    summary = _service(world).dashboard_summary(world.scope(staff, Operation.VIEW_DASHBOARD), today=TODAY)

    assert summary.pending_follow_ups == 1
    assert summary.self_attendance.subject_id == staff.principal_id
    assert "DROPPED_STUDENT" not in [a.type for a in summary.alerts]
