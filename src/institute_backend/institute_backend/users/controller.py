from __future__ import annotations

from flask import Flask

from ..common.http import bearer_token, json_body, success, tenant_override
from ..core.enums import Operation
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def admin_scope():
        return container.gate.enter(bearer_token(), Operation.MANAGE_PRINCIPALS, tenant_override=tenant_override())

    @app.route("/api/admin/students", methods=["POST"], endpoint="create_student")
    def create_student():
        scope = admin_scope()
        body = json_body()
        student = container.principal_service.create_student(
            scope,
            name=body.get("name", ""),
            email=body.get("email", ""),
            password=body.get("password", ""),
            admission_date=body.get("admission_date"),
            monthly_fees=body.get("monthly_fees"),
            total_fees=body.get("total_fees"),
            batch_time=body.get("batch_time"),
            course_id=body.get("course_id"),
        )
        return success(student, status=201, message="Student created successfully")

    @app.route("/api/admin/staff", methods=["POST"], endpoint="create_staff")
    def create_staff():
        scope = admin_scope()
        body = json_body()
        staff = container.principal_service.create_staff(
            scope,
            name=body.get("name", ""),
            email=body.get("email", ""),
            password=body.get("password", ""),
            salary_type=body.get("salary_type"),
            salary_rate=body.get("salary_rate"),
        )
        return success(staff, status=201, message="Staff created successfully")

    @app.route("/api/admin/principals/<int:principal_id>/deactivate", methods=["POST"], endpoint="deactivate_principal")
    def deactivate_principal(principal_id: int):
        scope = admin_scope()
        container.principal_service.deactivate(scope, principal_id)
        return success(message="Account deactivated")

    @app.route("/api/admin/students/<int:student_id>/status", methods=["PATCH"], endpoint="set_student_status")
    def set_student_status(student_id: int):
        scope = admin_scope()
        body = json_body()
        student = container.principal_service.set_student_status(scope, student_id, body.get("status"))
        return success(student, message="Student status updated")
