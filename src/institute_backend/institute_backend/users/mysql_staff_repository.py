from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from ..core.constants import STUDENT_CODE_SEQUENCE_WIDTH
from ..core.enums import Role, SalaryType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, next_sequence
from .model import SalaryPolicy, Staff
from .repository import StaffRepository

_SELECT = """
    SELECT st.staff_id, st.branch_id, st.staff_code, p.display_name, p.is_active,
           st.salary_type, st.salary_rate
    FROM staff st
    JOIN principals p ON p.principal_id = st.staff_id
"""


def _row_to_staff(r: dict) -> Staff:
    return Staff(
        staff_id=int(r["staff_id"]),
        tenant_id=int(r["branch_id"]),
        staff_code=r["staff_code"],
        name=r["display_name"],
        salary_policy=SalaryPolicy(salary_type=SalaryType(r["salary_type"]), rate=as_decimal(r["salary_rate"])),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLStaffRepository(StaffRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, tenant_id: int, staff_id: int) -> Optional[Staff]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE st.staff_id=%s AND st.branch_id=%s", (int(staff_id), int(tenant_id)))
            r = fetchone(cur)
            return _row_to_staff(r) if r else None

    def list_active(self, tenant_id: int) -> Sequence[Staff]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE st.branch_id=%s AND p.is_active=1 ORDER BY st.staff_code", (int(tenant_id),))
            return [_row_to_staff(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        tenant_id: int,
        branch_code: str,
        name: str,
        email: str,
        credential_hash: str,
        salary_type: SalaryType,
        salary_rate: Decimal,
    ) -> Staff:
        with db_cursor(self._conn_factory) as (_, cur):
            seq = next_sequence(cur, tenant_id=tenant_id, counter_key="staff")
            staff_code = f"{branch_code}-STF-{seq:0{STUDENT_CODE_SEQUENCE_WIDTH}d}".upper()
            cur.execute(
                """
                INSERT INTO principals(branch_id, role, email, display_name, password_hash, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (int(tenant_id), Role.STAFF.value, email, name, credential_hash),
            )
            staff_id = int(cur.lastrowid)
            cur.execute(
                """
                INSERT INTO staff(staff_id, branch_id, staff_code, salary_type, salary_rate)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (staff_id, int(tenant_id), staff_code, salary_type.value, salary_rate),
            )
        return Staff(
            staff_id=staff_id,
            tenant_id=int(tenant_id),
            staff_code=staff_code,
            name=name,
            salary_policy=SalaryPolicy(salary_type=salary_type, rate=salary_rate),
        )
