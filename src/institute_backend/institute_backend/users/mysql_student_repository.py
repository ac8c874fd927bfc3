from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..core.constants import STUDENT_CODE_SEQUENCE_WIDTH
from ..core.enums import Role, StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, next_sequence
from .model import Student
from .repository import StudentRepository

STUDENT_COLUMNS = """
    s.student_id, s.branch_id, s.student_code, p.display_name, s.status, s.admission_date,
    s.monthly_fees, s.total_fees, s.paid_amount, s.due_amount, s.last_payment_date,
    s.batch_time, s.course_id
"""


def row_to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        tenant_id=int(r["branch_id"]),
        student_code=r["student_code"],
        name=r["display_name"],
        status=StudentStatus(r["status"]),
        admission_date=r.get("admission_date"),
        monthly_fees=as_decimal(r.get("monthly_fees")),
        total_fees=as_decimal(r.get("total_fees")),
        paid_amount=as_decimal(r.get("paid_amount")),
        due_amount=as_decimal(r.get("due_amount")),
        last_payment_date=r.get("last_payment_date"),
        batch_time=r.get("batch_time"),
        course_id=r.get("course_id"),
    )


def _status_params(statuses: Iterable[StudentStatus]) -> tuple[str, list[str]]:
    values = [s.value for s in statuses]
    if not values:
        raise ValueError("At least one student status is required")
    return ",".join(["%s"] * len(values)), values


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, tenant_id: int, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {STUDENT_COLUMNS}
                FROM students s
                JOIN principals p ON p.principal_id = s.student_id
                WHERE s.student_id=%s AND s.branch_id=%s
                """,
                (int(student_id), int(tenant_id)),
            )
            r = fetchone(cur)
            return row_to_student(r) if r else None

    def create(
        self,
        *,
        tenant_id: int,
        branch_code: str,
        name: str,
        email: str,
        credential_hash: str,
        admission_date: date,
        monthly_fees: Decimal,
        total_fees: Decimal,
        batch_time: Optional[str] = None,
        course_id: Optional[int] = None,
    ) -> Student:
        year = admission_date.year
        with db_cursor(self._conn_factory) as (_, cur):
            seq = next_sequence(cur, tenant_id=tenant_id, counter_key=f"student:{year}")
            student_code = f"{branch_code}-{year}-{seq:0{STUDENT_CODE_SEQUENCE_WIDTH}d}".upper()
            cur.execute(
                """
                INSERT INTO principals(branch_id, role, email, display_name, password_hash, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (int(tenant_id), Role.STUDENT.value, email, name, credential_hash),
            )
            student_id = int(cur.lastrowid)
            cur.execute(
                """
                INSERT INTO students(
                    student_id, branch_id, student_code, status, admission_date,
                    monthly_fees, total_fees, paid_amount, due_amount, batch_time, course_id
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,0,%s,%s,%s)
                """,
                (
                    student_id,
                    int(tenant_id),
                    student_code,
                    StudentStatus.PENDING.value,
                    admission_date,
                    monthly_fees,
                    total_fees,
                    total_fees,
                    batch_time,
                    course_id,
                ),
            )
        return Student(
            student_id=student_id,
            tenant_id=int(tenant_id),
            student_code=student_code,
            name=name,
            status=StudentStatus.PENDING,
            admission_date=admission_date,
            monthly_fees=monthly_fees,
            total_fees=total_fees,
            paid_amount=Decimal("0.00"),
            due_amount=total_fees,
            batch_time=batch_time,
            course_id=course_id,
        )

    def set_status(self, tenant_id: int, student_id: int, *, status: StudentStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET status=%s WHERE student_id=%s AND branch_id=%s",
                (status.value, int(student_id), int(tenant_id)),
            )
            return cur.rowcount > 0

    def list_by_status(self, tenant_id: int, status: StudentStatus) -> Sequence[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {STUDENT_COLUMNS}
                FROM students s
                JOIN principals p ON p.principal_id = s.student_id
                WHERE s.branch_id=%s AND s.status=%s
                ORDER BY s.student_code
                """,
                (int(tenant_id), status.value),
            )
            return [row_to_student(r) for r in fetchall(cur)]

    def count_by_status(self, tenant_id: int) -> dict[StudentStatus, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT status, COUNT(*) AS n FROM students WHERE branch_id=%s GROUP BY status",
                (int(tenant_id),),
            )
            counts = {s: 0 for s in StudentStatus}
            for r in fetchall(cur):
                counts[StudentStatus(r["status"])] = int(r["n"])
            return counts

    def count_due_above(self, tenant_id: int, *, threshold: Decimal, statuses: Iterable[StudentStatus]) -> int:
        placeholders, values = _status_params(statuses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS n FROM students
                WHERE branch_id=%s AND due_amount > %s AND status IN ({placeholders})
                """,
                (int(tenant_id), threshold, *values),
            )
            return int(fetchone(cur)["n"])

    def sum_due(self, tenant_id: int, *, statuses: Iterable[StudentStatus]) -> Decimal:
        placeholders, values = _status_params(statuses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COALESCE(SUM(due_amount), 0) AS total FROM students
                WHERE branch_id=%s AND status IN ({placeholders})
                """,
                (int(tenant_id), *values),
            )
            return as_decimal(fetchone(cur)["total"])
