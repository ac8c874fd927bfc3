from __future__ import annotations

from flask import Flask, request

from ..common.http import bearer_token, query_date, success, tenant_override
from ..core.enums import Operation
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/student/alerts", methods=["GET"], endpoint="student_alerts")
    def student_alerts():
        scope = container.gate.enter(bearer_token(), Operation.VIEW_ALERTS, tenant_override=tenant_override())
        alerts = container.alert_service.student_alerts(scope)
        return success(
            {
                "alerts": alerts,
                "total_alerts": len(alerts),
                "urgent_alerts": sum(1 for a in alerts if a.priority == "URGENT"),
                "high_priority_alerts": sum(1 for a in alerts if a.priority == "HIGH"),
            }
        )

    @app.route("/api/eligibility", methods=["GET"], endpoint="eligibility")
    def eligibility():
        scope = container.gate.enter(
            bearer_token(),
            Operation.VIEW_ELIGIBILITY,
            tenant_override=tenant_override(),
            subject_override=request.args.get("student_id"),
        )
        return success(container.alert_service.eligibility(scope))

    @app.route("/api/dashboard", methods=["GET"], endpoint="dashboard_summary")
    def dashboard_summary():
        scope = container.gate.enter(bearer_token(), Operation.VIEW_DASHBOARD, tenant_override=tenant_override())
        return success(container.alert_service.dashboard_summary(scope))

    @app.route("/api/absent-students", methods=["GET"], endpoint="absent_students")
    def absent_students():
        scope = container.gate.enter(
            bearer_token(), Operation.LIST_ABSENT_STUDENTS, tenant_override=tenant_override()
        )
        try:
            consecutive = int(request.args.get("consecutive_days") or 0)
        except ValueError:
            raise ValidationError("consecutive_days must be a number")
        result = container.alert_service.absent_students(scope, on=query_date("date"), consecutive_days=consecutive)
        return success({"date": result.on, "total_absent": result.total, "students": list(result.students)})
