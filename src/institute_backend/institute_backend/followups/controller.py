from __future__ import annotations

from flask import Flask, request

from ..common.http import bearer_token, json_body, query_date, query_page, success, tenant_override
from ..core.constants import DEFAULT_PAGE_LIMIT
from ..core.enums import Operation
from ..container import Container
from .model import FollowUpInput, FollowUpPatch


def register(app: Flask, container: Container) -> None:
    @app.route("/api/staff/follow-ups", methods=["POST"], endpoint="create_follow_up")
    def create_follow_up():
        scope = container.gate.enter(bearer_token(), Operation.MANAGE_FOLLOW_UPS, tenant_override=tenant_override())
        body = json_body()
        follow_up = container.followup_service.create(
            scope,
            FollowUpInput(
                student_id=body.get("student_id"),
                absent_date=body.get("absent_date"),
                call_status=body.get("call_status"),
                reason=body.get("reason"),
                reason_details=body.get("reason_details"),
                expected_return_date=body.get("expected_return_date"),
                remarks=body.get("remarks"),
                next_follow_up_date=body.get("next_follow_up_date"),
            ),
        )
        return success(follow_up, status=201, message="Follow-up created successfully")

    @app.route("/api/staff/follow-ups", methods=["GET"], endpoint="list_follow_ups")
    def list_follow_ups():
        scope = container.gate.enter(bearer_token(), Operation.MANAGE_FOLLOW_UPS, tenant_override=tenant_override())
        page, limit = query_page(DEFAULT_PAGE_LIMIT)
        return success(
            container.followup_service.list(
                scope,
                status=request.args.get("status"),
                student_id=request.args.get("student_id"),
                page=page,
                limit=limit,
            )
        )

    @app.route("/api/staff/follow-ups/<int:follow_up_id>", methods=["PATCH"], endpoint="update_follow_up")
    def update_follow_up(follow_up_id: int):
        scope = container.gate.enter(bearer_token(), Operation.MANAGE_FOLLOW_UPS, tenant_override=tenant_override())
        body = json_body()
        follow_up = container.followup_service.update(
            scope,
            follow_up_id,
            FollowUpPatch(
                call_status=body.get("call_status"),
                reason=body.get("reason"),
                reason_details=body.get("reason_details"),
                expected_return_date=body.get("expected_return_date"),
                remarks=body.get("remarks"),
                follow_up_status=body.get("follow_up_status"),
                next_follow_up_date=body.get("next_follow_up_date"),
            ),
        )
        return success(follow_up, message="Follow-up updated successfully")

    @app.route("/api/student/absence-history", methods=["GET"], endpoint="absence_history")
    def absence_history():
        scope = container.gate.enter(
            bearer_token(),
            Operation.VIEW_ABSENCE_HISTORY,
            tenant_override=tenant_override(),
            subject_override=request.args.get("student_id"),
        )
        page, limit = query_page(DEFAULT_PAGE_LIMIT)
        return success(
            container.followup_service.absence_history(
                scope, start=query_date("start_date"), end=query_date("end_date"), page=page, limit=limit
            )
        )
