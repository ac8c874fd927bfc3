from __future__ import annotations

from flask import Flask, request

from ..common.http import bearer_token, success, tenant_override
from ..common.validators import require_positive_int
from ..core.enums import Operation
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/staff/salary", methods=["GET"], endpoint="staff_salary")
    def staff_salary():
        scope = container.gate.enter(bearer_token(), Operation.VIEW_OWN_SALARY, tenant_override=tenant_override())
        view = container.salary_service.salary_view(scope)
        policy = view.staff.salary_policy
        return success(
            {
                "staff_code": view.staff.staff_code,
                "name": view.staff.name,
                "salary_type": policy.salary_type,
                "salary_rate": policy.rate,
                "current_month": view.current,
                "month_wise_breakdown": [
                    {
                        "label": m.label,
                        "month": m.month,
                        "year": m.year,
                        "attendance_count": m.attendance_count,
                        "salary": m.salary,
                    }
                    for m in view.breakdown
                ],
                "note": "This is a read-only view. Contact administrator for salary adjustments.",
            }
        )

    @app.route("/api/admin/salary-report", methods=["GET"], endpoint="salary_report")
    def salary_report():
        scope = container.gate.enter(bearer_token(), Operation.SALARY_REPORT, tenant_override=tenant_override())
        month = require_positive_int(request.args.get("month"), "Month")
        year = require_positive_int(request.args.get("year"), "Year")
        rows = container.salary_service.salary_report(scope, month=month, year=year)
        return success(
            [
                {
                    "staff_id": r.staff.staff_id,
                    "staff_code": r.staff.staff_code,
                    "name": r.staff.name,
                    "salary_type": r.staff.salary_policy.salary_type,
                    "attendance_count": r.salary.attendance_count,
                    "salary": r.salary.salary,
                }
                for r in rows
            ]
        )
