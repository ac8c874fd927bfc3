from __future__ import annotations

from flask import Flask

from ..common.http import bearer_token, json_body, success, tenant_override
from ..core.enums import Operation, Role
from ..core.exceptions import ValidationError
from ..container import Container

_ROLE_PATHS = {"admin": Role.ADMIN, "staff": Role.STAFF, "student": Role.STUDENT}


def register(app: Flask, container: Container) -> None:
    @app.route("/api/<role_path>/auth/login", methods=["POST"], endpoint="login")
    def login(role_path: str):
        role = _ROLE_PATHS.get(role_path)
        if role is None:
            raise ValidationError("Unknown login role")
        body = json_body()
        result = container.auth_service.login(role, body.get("email", ""), body.get("password", ""))
        return success({"token": result.token, "identity": result.identity}, message="Login successful")

    @app.route("/api/auth/me", methods=["GET"], endpoint="me")
    def me():
        return success(container.verifier.verify(bearer_token()))

    @app.route("/api/auth/change-password", methods=["POST"], endpoint="change_password")
    def change_password():
        scope = container.gate.enter(bearer_token(), Operation.CHANGE_OWN_PASSWORD, tenant_override=tenant_override())
        body = json_body()
        container.auth_service.change_password(
            scope.identity,
            current_password=body.get("current_password", ""),
            new_password=body.get("new_password", ""),
        )
        return success(message="Password changed successfully")
