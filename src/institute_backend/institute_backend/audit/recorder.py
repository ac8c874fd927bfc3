from __future__ import annotations

import json
import logging
from typing import Protocol

from ..common.serialization import to_primitive
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import AuditEntry

logger = logging.getLogger(__name__)

MODULE_ATTENDANCE = "ATTENDANCE"
MODULE_PAYMENT = "PAYMENT"
MODULE_FOLLOW_UP = "FOLLOW_UP"
MODULE_PRINCIPAL = "PRINCIPAL"
MODULE_AUTH = "AUTH"
MODULE_SECURITY = "SECURITY"


class AuditRecorder(Protocol):
    def record(self, entry: AuditEntry) -> None:
        raise NotImplementedError


class MySQLAuditRecorder(AuditRecorder):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record(self, entry: AuditEntry) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO audit_logs(branch_id, principal_id, role, action, module, entity_id, old_data, new_data)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(entry.tenant_id),
                    int(entry.principal_id),
                    entry.role.value,
                    entry.action,
                    entry.module,
                    entry.entity_id,
                    json.dumps(to_primitive(entry.old_data)) if entry.old_data is not None else None,
                    json.dumps(to_primitive(entry.new_data)) if entry.new_data is not None else None,
                ),
            )


class BestEffortAuditRecorder(AuditRecorder):
    """Fire-and-forget wrapper: an audit failure never undoes the primary mutation.

    Failures are logged here and not raised.
    """

    def __init__(self, inner: AuditRecorder):
        self._inner = inner

    def record(self, entry: AuditEntry) -> None:
        try:
            self._inner.record(entry)
        except Exception:
            logger.exception(
                "Audit write failed (tenant=%s action=%s module=%s entity=%s)",
                entry.tenant_id,
                entry.action,
                entry.module,
                entry.entity_id,
            )
