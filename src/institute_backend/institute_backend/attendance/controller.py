from __future__ import annotations

from flask import Flask, request

from ..common.http import bearer_token, conflict, json_body, query_date, query_page, success, tenant_override
from ..common.validators import parse_date, parse_enum
from ..core.constants import DEFAULT_ATTENDANCE_PAGE_LIMIT
from ..core.enums import AttendanceMethod, AttendanceOutcome, AttendanceStatus, Operation
from ..container import Container
from .model import AttendanceResult
from .service import MarkAttendance

_MESSAGES = {
    AttendanceOutcome.CHECKED_IN: "Check-in successful",
    AttendanceOutcome.CHECKED_OUT: "Check-out successful",
    AttendanceOutcome.MARKED: "Attendance marked successfully",
    AttendanceOutcome.ALREADY_CHECKED_OUT: "Already checked out for today",
    AttendanceOutcome.DUPLICATE_ATTENDANCE: "Attendance already marked for this student",
}


def _respond(result: AttendanceResult):
    message = _MESSAGES[result.outcome]
    if result.is_conflict:
        return conflict(result.outcome.value, message, result.record)
    status = 200 if result.outcome == AttendanceOutcome.CHECKED_OUT else 201
    return success({"outcome": result.outcome, "record": result.record}, status=status, message=message)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/staff/attendance/self", methods=["POST"], endpoint="staff_self_scan")
    def staff_self_scan():
        scope = container.gate.enter(bearer_token(), Operation.STAFF_SELF_SCAN, tenant_override=tenant_override())
        body = json_body()
        return _respond(container.attendance_ledger.staff_self_scan(scope, body.get("qr_data")))

    @app.route("/api/staff/attendance/today", methods=["GET"], endpoint="staff_today_status")
    def staff_today_status():
        scope = container.gate.enter(bearer_token(), Operation.STAFF_SELF_SCAN, tenant_override=tenant_override())
        return success({"record": container.attendance_ledger.today_status(scope)})

    @app.route("/api/attendance/students", methods=["POST"], endpoint="mark_student_attendance")
    def mark_student_attendance():
        body = json_body()
        scope = container.gate.enter(
            bearer_token(),
            Operation.MARK_STUDENT_ATTENDANCE,
            tenant_override=tenant_override(),
            subject_override=body.get("student_id"),
        )
        cmd = MarkAttendance(
            student_id=body.get("student_id"),
            status=parse_enum(AttendanceStatus, body.get("status") or AttendanceStatus.PRESENT.value, "Status"),
            method=parse_enum(AttendanceMethod, body.get("method") or AttendanceMethod.MANUAL.value, "Method"),
            attendance_date=parse_date(body.get("date"), "Date", required=False),
            time_slot=body.get("time_slot"),
            qr_payload=body.get("qr_data"),
            batch_id=body.get("batch_id"),
        )
        return _respond(container.attendance_ledger.mark_student(scope, cmd))

    @app.route("/api/attendance", methods=["GET"], endpoint="list_attendance")
    def list_attendance():
        scope = container.gate.enter(
            bearer_token(),
            Operation.VIEW_ATTENDANCE,
            tenant_override=tenant_override(),
            subject_override=request.args.get("student_id"),
        )
        page, limit = query_page(DEFAULT_ATTENDANCE_PAGE_LIMIT)
        listing = container.attendance_ledger.list_attendance(
            scope, start=query_date("start_date"), end=query_date("end_date"), page=page, limit=limit
        )
        return success(
            {
                "attendances": list(listing.page.items),
                "statistics": listing.stats,
                "pagination": listing.page.meta(),
            }
        )
