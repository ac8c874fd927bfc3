from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """Yield (conn, cursor) inside one transaction: commit on exit, rollback on error."""
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: BaseException) -> bool:
    return isinstance(exc, mysql.connector.IntegrityError) and getattr(exc, "errno", None) == errorcode.ER_DUP_ENTRY


def as_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def next_sequence(cur, *, tenant_id: int, counter_key: str) -> int:
    """Allocate the next value of a per-branch counter inside the caller's transaction.

    LAST_INSERT_ID(expr) makes the increment and the read one atomic step, so
    concurrent writers never see the same value.
    """

    cur.execute(
        """
        INSERT INTO sequence_counters(branch_id, counter_key, last_value)
        VALUES(%s, %s, LAST_INSERT_ID(1))
        ON DUPLICATE KEY UPDATE last_value = LAST_INSERT_ID(last_value + 1)
        """,
        (int(tenant_id), counter_key),
    )
    cur.execute("SELECT LAST_INSERT_ID() AS seq")
    row = fetchone(cur)
    return int(row["seq"] if isinstance(row, dict) else row[0])
