from __future__ import annotations

import dataclasses
from datetime import date
from typing import Optional, Sequence

from ..core.enums import AbsenceReason, CallStatus, FollowUpStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import FollowUp
from .repository import FollowUpRepository

_COLUMNS = """
    follow_up_id, branch_id, student_id, staff_id, absent_date, call_status, reason,
    follow_up_status, reason_details, expected_return_date, remarks, next_follow_up_date, resolved_date
"""


def _row_to_follow_up(r: dict) -> FollowUp:
    return FollowUp(
        follow_up_id=int(r["follow_up_id"]),
        tenant_id=int(r["branch_id"]),
        student_id=int(r["student_id"]),
        staff_id=int(r["staff_id"]),
        absent_date=r["absent_date"],
        call_status=CallStatus(r["call_status"]),
        reason=AbsenceReason(r["reason"]),
        follow_up_status=FollowUpStatus(r["follow_up_status"]),
        reason_details=r.get("reason_details"),
        expected_return_date=r.get("expected_return_date"),
        remarks=r.get("remarks"),
        next_follow_up_date=r.get("next_follow_up_date"),
        resolved_date=r.get("resolved_date"),
    )


def _staff_filters(
    tenant_id: int, staff_id: int, status: Optional[FollowUpStatus], student_id: Optional[int]
) -> tuple[str, list[object]]:
    clauses = ["branch_id=%s", "staff_id=%s"]
    params: list[object] = [int(tenant_id), int(staff_id)]
    if status is not None:
        clauses.append("follow_up_status=%s")
        params.append(status.value)
    if student_id is not None:
        clauses.append("student_id=%s")
        params.append(int(student_id))
    return " AND ".join(clauses), params


class MySQLFollowUpRepository(FollowUpRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, follow_up: FollowUp) -> FollowUp:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO follow_ups(
                    branch_id, student_id, staff_id, absent_date, call_status, reason, follow_up_status,
                    reason_details, expected_return_date, remarks, next_follow_up_date
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(follow_up.tenant_id),
                    int(follow_up.student_id),
                    int(follow_up.staff_id),
                    follow_up.absent_date,
                    follow_up.call_status.value,
                    follow_up.reason.value,
                    follow_up.follow_up_status.value,
                    follow_up.reason_details,
                    follow_up.expected_return_date,
                    follow_up.remarks,
                    follow_up.next_follow_up_date,
                ),
            )
            return dataclasses.replace(follow_up, follow_up_id=int(cur.lastrowid))

    def get_for_staff(self, tenant_id: int, follow_up_id: int, staff_id: int) -> Optional[FollowUp]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM follow_ups WHERE follow_up_id=%s AND branch_id=%s AND staff_id=%s",
                (int(follow_up_id), int(tenant_id), int(staff_id)),
            )
            r = fetchone(cur)
            return _row_to_follow_up(r) if r else None

    def update(self, follow_up: FollowUp) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE follow_ups
                SET call_status=%s, reason=%s, follow_up_status=%s, reason_details=%s,
                    expected_return_date=%s, remarks=%s, next_follow_up_date=%s, resolved_date=%s
                WHERE follow_up_id=%s AND branch_id=%s AND staff_id=%s
                """,
                (
                    follow_up.call_status.value,
                    follow_up.reason.value,
                    follow_up.follow_up_status.value,
                    follow_up.reason_details,
                    follow_up.expected_return_date,
                    follow_up.remarks,
                    follow_up.next_follow_up_date,
                    follow_up.resolved_date,
                    int(follow_up.follow_up_id),
                    int(follow_up.tenant_id),
                    int(follow_up.staff_id),
                ),
            )
            return cur.rowcount > 0

    def list_for_staff(
        self,
        tenant_id: int,
        staff_id: int,
        *,
        status: Optional[FollowUpStatus] = None,
        student_id: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[FollowUp]:
        where, params = _staff_filters(tenant_id, staff_id, status, student_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM follow_ups
                WHERE {where}
                ORDER BY absent_date DESC, follow_up_id DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [_row_to_follow_up(r) for r in fetchall(cur)]

    def count_for_staff(
        self,
        tenant_id: int,
        staff_id: int,
        *,
        status: Optional[FollowUpStatus] = None,
        student_id: Optional[int] = None,
    ) -> int:
        where, params = _staff_filters(tenant_id, staff_id, status, student_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM follow_ups WHERE {where}", tuple(params))
            return int(fetchone(cur)["n"])

    def list_for_student(
        self,
        tenant_id: int,
        student_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[FollowUp]:
        clauses = ["branch_id=%s", "student_id=%s"]
        params: list[object] = [int(tenant_id), int(student_id)]
        if start is not None:
            clauses.append("absent_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("absent_date <= %s")
            params.append(end)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM follow_ups
                WHERE {" AND ".join(clauses)}
                ORDER BY absent_date DESC, follow_up_id DESC
                """,
                tuple(params),
            )
            return [_row_to_follow_up(r) for r in fetchall(cur)]

    def report_rows(
        self,
        tenant_id: int,
        staff_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[FollowUpStatus] = None,
        reason: Optional[AbsenceReason] = None,
    ) -> Sequence[FollowUp]:
        where, params = _staff_filters(tenant_id, staff_id, status, None)
        clauses = [where]
        if start is not None:
            clauses.append("absent_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("absent_date <= %s")
            params.append(end)
        if reason is not None:
            clauses.append("reason=%s")
            params.append(reason.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM follow_ups
                WHERE {" AND ".join(clauses)}
                ORDER BY absent_date DESC, follow_up_id DESC
                """,
                tuple(params),
            )
            return [_row_to_follow_up(r) for r in fetchall(cur)]
