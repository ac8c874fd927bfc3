from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable

import mysql.connector
from werkzeug.security import generate_password_hash

from ..core.enums import Role
from .connection import DBConfig


def _connect(config: DBConfig, *, with_database: bool = True):
    kwargs = dict(host=config.host, port=config.port, user=config.user, password=config.password, use_pure=True)
    if with_database:
        kwargs["database"] = config.database
    return mysql.connector.connect(**kwargs)


def _strip_create_db_and_use(sql: str) -> str:
    # schema.sql stays valid whatever the configured database name is
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal splitter: ';' ends a statement unless it sits inside quotes.
    buf: list[str] = []
    quote = ""
    escape = False

    for ch in sql:
        buf.append(ch)
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch in ("'", '"'):
            if not quote:
                quote = ch
            elif quote == ch:
                quote = ""
            continue
        if ch == ";" and not quote:
            buf.pop()
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    config = DBConfig.from_dict(db_config)
    conn = _connect(config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    """Idempotent: schema.sql only uses CREATE TABLE IF NOT EXISTS."""
    ensure_database_exists(db_config)
    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))

    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


def ensure_demo_branch(db_config: dict) -> None:
    """Seed one branch with an admin account so a fresh install can sign in."""
    code = os.getenv("DEMO_BRANCH_CODE", "DEMO")
    email = os.getenv("DEMO_ADMIN_EMAIL", "admin@demo.local").lower()
    password = os.getenv("DEMO_ADMIN_PASSWORD", "admin123")

    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor(dictionary=True)
        cur.execute("SELECT branch_id FROM branches WHERE code=%s", (code,))
        row = cur.fetchone()
        if row:
            branch_id = int(row["branch_id"])
        else:
            cur.execute("INSERT INTO branches(code, name) VALUES(%s,%s)", (code, f"{code} Branch"))
            branch_id = int(cur.lastrowid)

        cur.execute("SELECT principal_id FROM principals WHERE role=%s AND email=%s", (Role.ADMIN.value, email))
        if cur.fetchone():
            cur.execute(
                "UPDATE principals SET password_hash=%s, is_active=1 WHERE role=%s AND email=%s",
                (generate_password_hash(password), Role.ADMIN.value, email),
            )
        else:
            cur.execute(
                """
                INSERT INTO principals(branch_id, role, email, display_name, password_hash, is_active)
                VALUES(%s,%s,%s,%s,%s,1)
                """,
                (branch_id, Role.ADMIN.value, email, "Branch Admin", generate_password_hash(password)),
            )
        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
