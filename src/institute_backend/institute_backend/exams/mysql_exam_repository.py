from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import ResultStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import ExamResult
from .repository import ExamRepository


class MySQLExamRepository(ExamRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def results_for_student(self, tenant_id: int, student_id: int) -> Sequence[ExamResult]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT result_id, branch_id, student_id, exam_id, status
                FROM exam_results
                WHERE branch_id=%s AND student_id=%s
                ORDER BY result_id ASC
                """,
                (int(tenant_id), int(student_id)),
            )
            return [
                ExamResult(
                    result_id=int(r["result_id"]),
                    tenant_id=int(r["branch_id"]),
                    student_id=int(r["student_id"]),
                    exam_id=int(r["exam_id"]),
                    status=ResultStatus(r["status"]),
                )
                for r in fetchall(cur)
            ]

    def count_upcoming(self, tenant_id: int, *, from_date: date, course_id: Optional[int] = None) -> int:
        sql = "SELECT COUNT(*) AS n FROM exams WHERE branch_id=%s AND exam_date >= %s AND is_active=1"
        params: list[object] = [int(tenant_id), from_date]
        if course_id is not None:
            sql += " AND course_id=%s"
            params.append(int(course_id))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return int(fetchone(cur)["n"])
