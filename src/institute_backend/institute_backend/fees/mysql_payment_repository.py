from __future__ import annotations

from datetime import date, timedelta
from typing import Optional, Sequence

import mysql.connector

from ..core.constants import RECEIPT_SEQUENCE_WIDTH
from ..core.enums import PaymentMode, StudentStatus
from ..core.exceptions import IdempotencyKeyReusedError, InactiveSubjectError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone, is_duplicate_key, next_sequence
from ..users.mysql_student_repository import STUDENT_COLUMNS, row_to_student
from .model import BillingCycle, NewPayment, Payment, PaymentResult
from .repository import PaymentRepository


_COLUMNS = """
    payment_id, branch_id, student_id, amount, discount, payment_mode, receipt_number,
    month, year, collected_by, description, transaction_id, idempotency_key, created_at
"""


def _row_to_payment(r: dict) -> Payment:
    return Payment(
        payment_id=int(r["payment_id"]),
        tenant_id=int(r["branch_id"]),
        student_id=int(r["student_id"]),
        amount=as_decimal(r["amount"]),
        discount=as_decimal(r.get("discount")),
        payment_mode=PaymentMode(r["payment_mode"]),
        receipt_number=r["receipt_number"],
        month=r["month"],
        year=int(r["year"]),
        collected_by=int(r["collected_by"]),
        created_at=r["created_at"],
        description=r.get("description"),
        transaction_id=r.get("transaction_id"),
        idempotency_key=r.get("idempotency_key"),
    )


def _filters(tenant_id: int, student_id: Optional[int], collected_by: Optional[int]) -> tuple[str, list[object]]:
    clauses = ["branch_id=%s"]
    params: list[object] = [int(tenant_id)]
    if student_id is not None:
        clauses.append("student_id=%s")
        params.append(int(student_id))
    if collected_by is not None:
        clauses.append("collected_by=%s")
        params.append(int(collected_by))
    return " AND ".join(clauses), params


class MySQLPaymentRepository(PaymentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_student(self, cur, tenant_id: int, student_id: int):
        cur.execute(
            f"""
            SELECT {STUDENT_COLUMNS}
            FROM students s
            JOIN principals p ON p.principal_id = s.student_id
            WHERE s.student_id=%s AND s.branch_id=%s
            """,
            (int(student_id), int(tenant_id)),
        )
        return row_to_student(fetchone(cur))

    def _replay(self, new: NewPayment) -> Optional[PaymentResult]:
        if not new.idempotency_key:
            return None
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM payments WHERE branch_id=%s AND student_id=%s AND idempotency_key=%s",
                (int(new.tenant_id), int(new.student_id), new.idempotency_key),
            )
            r = fetchone(cur)
            if not r:
                return None
            payment = _row_to_payment(r)
            if not new.matches(payment):
                raise IdempotencyKeyReusedError("Idempotency key was already used for a different payment")
            return PaymentResult(
                payment=payment,
                student=self._load_student(cur, payment.tenant_id, payment.student_id),
                replayed=True,
            )

    def record_payment(self, new: NewPayment, *, branch_code: str) -> PaymentResult:
        replay = self._replay(new)
        if replay:
            return replay

        period = new.paid_at.strftime("%Y%m")
        net = new.net_amount
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                seq = next_sequence(cur, tenant_id=new.tenant_id, counter_key=f"receipt:{period}")
                receipt_number = f"{branch_code.upper()}-{period}-{seq:0{RECEIPT_SEQUENCE_WIDTH}d}"
                cur.execute(
                    """
                    INSERT INTO payments(
                        branch_id, student_id, amount, discount, payment_mode, receipt_number,
                        month, year, collected_by, description, transaction_id, idempotency_key, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        int(new.tenant_id),
                        int(new.student_id),
                        new.amount,
                        new.discount,
                        new.payment_mode.value,
                        receipt_number,
                        new.month,
                        int(new.year),
                        int(new.collected_by),
                        new.description,
                        new.transaction_id,
                        new.idempotency_key,
                        new.paid_at,
                    ),
                )
                payment_id = int(cur.lastrowid)
                cur.execute(
                    """
                    UPDATE students
                    SET paid_amount = paid_amount + %s,
                        due_amount = GREATEST(0, due_amount - %s),
                        last_payment_date = %s
                    WHERE student_id=%s AND branch_id=%s AND status=%s
                    """,
                    (net, net, new.paid_at, int(new.student_id), int(new.tenant_id), StudentStatus.ACTIVE.value),
                )
                if cur.rowcount == 0:
                    raise InactiveSubjectError("Only active students can receive payments")
                student = self._load_student(cur, new.tenant_id, new.student_id)
        except mysql.connector.IntegrityError as e:
            # a concurrent request with the same key won the race
            if is_duplicate_key(e):
                replay = self._replay(new)
                if replay:
                    return replay
            raise

        payment = Payment(
            payment_id=payment_id,
            tenant_id=int(new.tenant_id),
            student_id=int(new.student_id),
            amount=new.amount,
            discount=new.discount,
            payment_mode=new.payment_mode,
            receipt_number=receipt_number,
            month=new.month,
            year=int(new.year),
            collected_by=int(new.collected_by),
            created_at=new.paid_at,
            description=new.description,
            transaction_id=new.transaction_id,
            idempotency_key=new.idempotency_key,
        )
        return PaymentResult(payment=payment, student=student)

    def list_payments(
        self,
        tenant_id: int,
        *,
        student_id: Optional[int] = None,
        collected_by: Optional[int] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[Payment]:
        where, params = _filters(tenant_id, student_id, collected_by)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM payments
                WHERE {where}
                ORDER BY created_at DESC, payment_id DESC
                LIMIT %s OFFSET %s
                """,
                (*params, int(limit), int(offset)),
            )
            return [_row_to_payment(r) for r in fetchall(cur)]

    def count_payments(
        self,
        tenant_id: int,
        *,
        student_id: Optional[int] = None,
        collected_by: Optional[int] = None,
    ) -> int:
        where, params = _filters(tenant_id, student_id, collected_by)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM payments WHERE {where}", tuple(params))
            return int(fetchone(cur)["n"])

    def paid_cycles(self, tenant_id: int, student_id: int) -> set[BillingCycle]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT DISTINCT month, year FROM payments WHERE branch_id=%s AND student_id=%s",
                (int(tenant_id), int(student_id)),
            )
            return {BillingCycle.of(r["month"], int(r["year"])) for r in fetchall(cur)}

    def report_rows(
        self,
        tenant_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        student_id: Optional[int] = None,
        payment_mode: Optional[PaymentMode] = None,
    ) -> Sequence[Payment]:
        where, params = _filters(tenant_id, student_id, None)
        clauses = [where]
        if start is not None:
            clauses.append("created_at >= %s")
            params.append(start)
        if end is not None:
            clauses.append("created_at < %s")
            params.append(end + timedelta(days=1))
        if payment_mode is not None:
            clauses.append("payment_mode=%s")
            params.append(payment_mode.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM payments
                WHERE {" AND ".join(clauses)}
                ORDER BY created_at DESC, payment_id DESC
                """,
                tuple(params),
            )
            return [_row_to_payment(r) for r in fetchall(cur)]
