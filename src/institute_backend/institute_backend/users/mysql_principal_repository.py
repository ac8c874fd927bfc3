from __future__ import annotations

from typing import Optional

from ..core.enums import Role, StudentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Principal
from .repository import PrincipalRepository

_SELECT = """
    SELECT p.principal_id, p.branch_id, p.role, p.email, p.display_name, p.password_hash, p.is_active,
           s.student_code, s.status AS student_status, st.staff_code
    FROM principals p
    LEFT JOIN students s ON s.student_id = p.principal_id
    LEFT JOIN staff st ON st.staff_id = p.principal_id
"""


def _row_to_principal(r: dict) -> Principal:
    role = Role(r["role"])
    is_active = bool(r.get("is_active", True))
    if role == Role.STUDENT:
        is_active = is_active and r.get("student_status") == StudentStatus.ACTIVE.value
    return Principal(
        principal_id=int(r["principal_id"]),
        tenant_id=int(r["branch_id"]),
        role=role,
        email=r["email"],
        display_name=r["display_name"],
        credential_hash=r["password_hash"],
        is_active=is_active,
        student_code=r.get("student_code"),
        staff_code=r.get("staff_code"),
    )


class MySQLPrincipalRepository(PrincipalRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, principal_id: int) -> Optional[Principal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE p.principal_id=%s", (int(principal_id),))
            r = fetchone(cur)
            return _row_to_principal(r) if r else None

    def get_by_email(self, role: Role, email: str) -> Optional[Principal]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE p.role=%s AND p.email=%s", (role.value, email.strip().lower()))
            r = fetchone(cur)
            return _row_to_principal(r) if r else None

    def update_credential(self, principal_id: int, *, credential_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE principals SET password_hash=%s WHERE principal_id=%s",
                (credential_hash, int(principal_id)),
            )
            return cur.rowcount > 0

    def set_active(self, tenant_id: int, principal_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE principals SET is_active=%s WHERE principal_id=%s AND branch_id=%s",
                (1 if is_active else 0, int(principal_id), int(tenant_id)),
            )
            return cur.rowcount > 0
