from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceMethod, AttendanceStatus, SubjectKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, is_duplicate_key
from .model import AttendanceRecord, AttendanceReportRow, NewAttendance
from .repository import AttendanceRepository

_COLUMNS = """
    record_id, branch_id, subject_id, subject_kind, attendance_date, time_slot,
    status, method, check_in, check_out, marked_by, batch_id
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        tenant_id=int(r["branch_id"]),
        subject_id=int(r["subject_id"]),
        subject_kind=SubjectKind(r["subject_kind"]),
        attendance_date=r["attendance_date"],
        time_slot=r.get("time_slot") or "",
        status=AttendanceStatus(r["status"]),
        method=AttendanceMethod(r["method"]),
        check_in=r.get("check_in"),
        check_out=r.get("check_out"),
        marked_by=int(r["marked_by"]),
        batch_id=r.get("batch_id"),
    )


def _range_clauses(start: Optional[date], end: Optional[date]) -> tuple[list[str], list[object]]:
    clauses: list[str] = []
    params: list[object] = []
    if start is not None:
        clauses.append("attendance_date >= %s")
        params.append(start)
    if end is not None:
        clauses.append("attendance_date <= %s")
        params.append(end)
    return clauses, params


class MySQLAttendanceRepository(AttendanceRepository):
    """Insert-if-absent rides on the UNIQUE KEY of attendance_records."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert_if_absent(self, new: NewAttendance) -> tuple[AttendanceRecord, bool]:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        branch_id, subject_id, subject_kind, attendance_date, time_slot,
                        status, method, check_in, marked_by, batch_id
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(new.tenant_id),
                        int(new.subject_id),
                        new.subject_kind.value,
                        new.attendance_date,
                        new.time_slot,
                        new.status.value,
                        new.method.value,
                        new.check_in,
                        int(new.marked_by),
                        new.batch_id,
                    ),
                )
                record_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            if not is_duplicate_key(e):
                raise
            existing = self.get_for_subject_and_date(
                new.tenant_id,
                new.subject_kind,
                new.subject_id,
                new.attendance_date,
                time_slot=new.time_slot,
            )
            if existing is None:
                raise
            return existing, False

        return (
            AttendanceRecord(
                record_id=record_id,
                tenant_id=int(new.tenant_id),
                subject_id=int(new.subject_id),
                subject_kind=new.subject_kind,
                attendance_date=new.attendance_date,
                time_slot=new.time_slot,
                status=new.status,
                method=new.method,
                check_in=new.check_in,
                marked_by=int(new.marked_by),
                batch_id=new.batch_id,
            ),
            True,
        )

    def get_for_subject_and_date(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        attendance_date: date,
        *,
        time_slot: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        clauses = ["branch_id=%s", "subject_kind=%s", "subject_id=%s", "attendance_date=%s"]
        params: list[object] = [int(tenant_id), subject_kind.value, int(subject_id), attendance_date]
        if time_slot is not None:
            clauses.append("time_slot=%s")
            params.append(time_slot)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {" AND ".join(clauses)}
                ORDER BY record_id ASC
                LIMIT 1
                """,
                tuple(params),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def set_check_out(self, tenant_id: int, record_id: int, *, check_out: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out=%s
                WHERE record_id=%s AND branch_id=%s AND check_out IS NULL
                """,
                (check_out, int(record_id), int(tenant_id)),
            )
            return cur.rowcount > 0

    def get(self, tenant_id: int, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s AND branch_id=%s",
                (int(record_id), int(tenant_id)),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_for_subject(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        status: Optional[AttendanceStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        clauses = ["branch_id=%s", "subject_kind=%s", "subject_id=%s"]
        params: list[object] = [int(tenant_id), subject_kind.value, int(subject_id)]
        range_clauses, range_params = _range_clauses(start, end)
        clauses += range_clauses
        params += range_params
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)

        sql = f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE {" AND ".join(clauses)}
            ORDER BY attendance_date DESC, record_id DESC
        """
        if limit is not None:
            sql += " LIMIT %s OFFSET %s"
            params += [int(limit), int(offset)]

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_by_status(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        subject_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> dict[AttendanceStatus, int]:
        clauses = ["branch_id=%s", "subject_kind=%s", "subject_id=%s"]
        params: list[object] = [int(tenant_id), subject_kind.value, int(subject_id)]
        range_clauses, range_params = _range_clauses(start, end)
        clauses += range_clauses
        params += range_params

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT status, COUNT(*) AS n
                FROM attendance_records
                WHERE {" AND ".join(clauses)}
                GROUP BY status
                """,
                tuple(params),
            )
            counts = {s: 0 for s in AttendanceStatus}
            for r in fetchall(cur):
                counts[AttendanceStatus(r["status"])] = int(r["n"])
            return counts

    def subject_ids_with_status(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        attendance_date: date,
        statuses: Iterable[AttendanceStatus],
    ) -> set[int]:
        values = [s.value for s in statuses]
        if not values:
            return set()
        placeholders = ",".join(["%s"] * len(values))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT DISTINCT subject_id
                FROM attendance_records
                WHERE branch_id=%s AND subject_kind=%s AND attendance_date=%s AND status IN ({placeholders})
                """,
                (int(tenant_id), subject_kind.value, attendance_date, *values),
            )
            return {int(r["subject_id"]) for r in fetchall(cur)}

    def report_rows(
        self,
        tenant_id: int,
        subject_kind: SubjectKind,
        *,
        start: date,
        end: date,
        subject_id: Optional[int] = None,
        batch_id: Optional[int] = None,
    ) -> Sequence[AttendanceReportRow]:
        if subject_kind == SubjectKind.STUDENT:
            join = "JOIN students x ON x.student_id = ar.subject_id AND x.branch_id = ar.branch_id"
            code = "x.student_code"
        else:
            join = "JOIN staff x ON x.staff_id = ar.subject_id AND x.branch_id = ar.branch_id"
            code = "x.staff_code"

        clauses = ["ar.branch_id=%s", "ar.subject_kind=%s", "ar.attendance_date BETWEEN %s AND %s"]
        params: list[object] = [int(tenant_id), subject_kind.value, start, end]
        if subject_id is not None:
            clauses.append("ar.subject_id=%s")
            params.append(int(subject_id))
        if batch_id is not None:
            clauses.append("ar.batch_id=%s")
            params.append(int(batch_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT
                    ar.record_id, ar.branch_id, ar.subject_id, ar.subject_kind, ar.attendance_date, ar.time_slot,
                    ar.status, ar.method, ar.check_in, ar.check_out, ar.marked_by, ar.batch_id,
                    {code} AS subject_code, p.display_name AS subject_name
                FROM attendance_records ar
                {join}
                JOIN principals p ON p.principal_id = ar.subject_id
                WHERE {" AND ".join(clauses)}
                ORDER BY ar.attendance_date DESC, ar.record_id DESC
                """,
                tuple(params),
            )
            return [
                AttendanceReportRow(
                    record=_row_to_record(r),
                    subject_code=r["subject_code"],
                    subject_name=r["subject_name"],
                )
                for r in fetchall(cur)
            ]
