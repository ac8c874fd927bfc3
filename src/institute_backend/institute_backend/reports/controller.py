from __future__ import annotations

from flask import Flask, request

from ..common.http import bearer_token, success, tenant_override
from ..core.enums import Operation
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reports/attendance", methods=["GET"], endpoint="attendance_report")
    def attendance_report():
        scope = container.gate.enter(
            bearer_token(),
            Operation.ATTENDANCE_REPORT,
            tenant_override=tenant_override(),
            subject_override=request.args.get("student_id") or request.args.get("staff_id"),
        )
        report = container.report_service.attendance_report(
            scope,
            kind=request.args.get("type"),
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
            batch_id=request.args.get("batch_id"),
        )
        return success(report)

    @app.route("/api/reports/fees", methods=["GET"], endpoint="fees_report")
    def fees_report():
        scope = container.gate.enter(
            bearer_token(),
            Operation.FEES_REPORT,
            tenant_override=tenant_override(),
            subject_override=request.args.get("student_id"),
        )
        report = container.report_service.fees_report(
            scope,
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
            payment_mode=request.args.get("payment_mode"),
        )
        return success(report)

    @app.route("/api/reports/follow-ups", methods=["GET"], endpoint="follow_up_report")
    def follow_up_report():
        scope = container.gate.enter(bearer_token(), Operation.FOLLOW_UP_REPORT, tenant_override=tenant_override())
        report = container.report_service.follow_up_report(
            scope,
            start=request.args.get("start_date"),
            end=request.args.get("end_date"),
            status=request.args.get("status"),
            reason=request.args.get("reason"),
        )
        return success(report)
