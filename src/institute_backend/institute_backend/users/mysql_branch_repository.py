from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import Branch
from .repository import BranchRepository


class MySQLBranchRepository(BranchRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, tenant_id: int) -> Optional[Branch]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT branch_id, code, name FROM branches WHERE branch_id=%s", (int(tenant_id),))
            r = fetchone(cur)
            if not r:
                return None
            return Branch(tenant_id=int(r["branch_id"]), code=r["code"], name=r["name"])
