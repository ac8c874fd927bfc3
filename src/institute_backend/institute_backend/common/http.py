from __future__ import annotations

import logging
from typing import Any, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from .pagination import Page
from .serialization import to_primitive
from .validators import parse_date, parse_page

logger = logging.getLogger(__name__)

TENANT_PARAM = "branch_id"


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def json_body() -> dict:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def tenant_override() -> Any:
    """Caller-supplied branch id, from the query string or the JSON body; only ever compared."""
    value = request.args.get(TENANT_PARAM)
    if value is None and request.is_json:
        value = json_body().get(TENANT_PARAM)
    return value


def query_date(name: str) -> Any:
    return parse_date(request.args.get(name), name, required=False)


def query_page(default_limit: int) -> tuple[int, int]:
    return parse_page(request.args.get("page"), request.args.get("limit"), default_limit=default_limit)


def success(data: Any = None, *, status: int = 200, message: Optional[str] = None):
    payload: dict[str, Any] = {"success": True}
    if message:
        payload["message"] = message
    if isinstance(data, Page):
        payload["data"] = to_primitive(list(data.items))
        payload["pagination"] = data.meta()
    elif data is not None:
        payload["data"] = to_primitive(data)
    return jsonify(payload), status


def conflict(code: str, message: str, data: Any):
    """Non-fatal conflict: the caller gets the existing record to reconcile with."""
    return jsonify({"success": False, "code": code, "message": message, "data": to_primitive(data)}), 409


def status_for(error: DomainError) -> int:
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, NotFoundError):
        return 404
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        return jsonify({"success": False, "code": e.code, "message": str(e)}), status_for(e)

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return jsonify({"success": False, "code": e.name.upper().replace(" ", "_"), "message": e.description}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        payload: dict[str, Any] = {"success": False, "code": "INTERNAL_ERROR", "message": "Internal server error"}
        if bool(app.config.get("DEBUG", False)):
            payload["error"] = str(e)
        return jsonify(payload), 500
