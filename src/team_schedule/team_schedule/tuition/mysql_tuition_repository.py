from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import TuitionLine, TuitionPayment
from .repository import TuitionRepository

_SELECT = """
    SELECT payment_id, student_id, team_id, year, month, category, base_amount, discount, annual_fee,
           entrance_fee, insurance_fee, spot_fee, amount, is_paid, paid_at
    FROM tuition_payments
"""

_INSERT_IGNORE = """
    INSERT IGNORE INTO tuition_payments(
        student_id, team_id, year, month, category, base_amount, discount, annual_fee,
        entrance_fee, insurance_fee, spot_fee, amount, is_paid
    )
    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,0)
"""


def _row_to_payment(r: dict) -> TuitionPayment:
    return TuitionPayment(
        payment_id=int(r["payment_id"]),
        student_id=int(r["student_id"]),
        team_id=int(r["team_id"]),
        year=int(r["year"]),
        month=int(r["month"]),
        category=r.get("category"),
        base_amount=int(r["base_amount"] or 0),
        discount=int(r["discount"] or 0),
        annual_fee=int(r["annual_fee"] or 0),
        entrance_fee=int(r["entrance_fee"] or 0),
        insurance_fee=int(r["insurance_fee"] or 0),
        spot_fee=int(r["spot_fee"] or 0),
        amount=int(r["amount"] or 0),
        is_paid=bool(r["is_paid"]),
        paid_at=r.get("paid_at"),
    )


def _line_params(team_id: int, year: int, month: int, line: TuitionLine) -> tuple:
    return (
        int(line.student_id),
        int(team_id),
        int(year),
        int(month),
        line.category,
        line.base_amount,
        line.discount,
        line.annual_fee,
        line.entrance_fee,
        line.insurance_fee,
        line.spot_fee,
        line.amount,
    )


class MySQLTuitionRepository(TuitionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _insert_ignore(cur, team_id: int, year: int, month: int, lines: Sequence[TuitionLine]) -> int:
        inserted = 0
        for line in lines:
            cur.execute(_INSERT_IGNORE, _line_params(team_id, year, month, line))
            inserted += cur.rowcount
        return inserted

    def get_by_id(self, payment_id: int) -> Optional[TuitionPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE payment_id=%s", (int(payment_id),))
            r = fetchone(cur)
            return _row_to_payment(r) if r else None

    def list_for_month(self, *, team_id: int, year: int, month: int) -> Sequence[TuitionPayment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"{_SELECT} WHERE team_id=%s AND year=%s AND month=%s ORDER BY student_id ASC",
                (int(team_id), int(year), int(month)),
            )
            return [_row_to_payment(r) for r in fetchall(cur)]

    def insert_missing(self, *, team_id: int, year: int, month: int, lines: Sequence[TuitionLine]) -> int:
        if not lines:
            return 0
        with db_cursor(self._conn_factory) as (_, cur):
            return self._insert_ignore(cur, team_id, year, month, lines)

    def replace_unpaid(
        self, *, team_id: int, year: int, month: int, lines: Sequence[TuitionLine]
    ) -> tuple[int, int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM tuition_payments WHERE team_id=%s AND year=%s AND month=%s AND is_paid=0",
                (int(team_id), int(year), int(month)),
            )
            deleted = cur.rowcount
            inserted = self._insert_ignore(cur, team_id, year, month, lines)
            return deleted, inserted

    def update_amounts(self, payment: TuitionPayment) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE tuition_payments
                SET category=%s, base_amount=%s, discount=%s, annual_fee=%s, entrance_fee=%s,
                    insurance_fee=%s, spot_fee=%s, amount=%s
                WHERE payment_id=%s AND is_paid=0
                """,
                (
                    payment.category,
                    payment.base_amount,
                    payment.discount,
                    payment.annual_fee,
                    payment.entrance_fee,
                    payment.insurance_fee,
                    payment.spot_fee,
                    payment.amount,
                    int(payment.payment_id),
                ),
            )
            return cur.rowcount > 0

    def set_paid(self, *, payment_id: int, is_paid: bool, paid_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE tuition_payments SET is_paid=%s, paid_at=%s WHERE payment_id=%s",
                (int(bool(is_paid)), paid_at, int(payment_id)),
            )
            return cur.rowcount > 0
