from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import TuitionLine, TuitionPayment


class TuitionRepository(Protocol):
    def get_by_id(self, payment_id: int) -> Optional[TuitionPayment]:
        raise NotImplementedError

    def list_for_month(self, *, team_id: int, year: int, month: int) -> Sequence[TuitionPayment]:
        raise NotImplementedError

    def insert_missing(self, *, team_id: int, year: int, month: int, lines: Sequence[TuitionLine]) -> int:
        """Insert lines whose (student, year, month) has no row yet. Returns rows inserted."""

        raise NotImplementedError

    def replace_unpaid(
        self, *, team_id: int, year: int, month: int, lines: Sequence[TuitionLine]
    ) -> tuple[int, int]:
        """Delete unpaid rows of the month and insert ``lines`` in one transaction.

        Paid rows are kept and win over lines for the same student. Returns (deleted, inserted).
        """

        raise NotImplementedError

    def update_amounts(self, payment: TuitionPayment) -> bool:
        """Persist category and amount columns of an unpaid row."""

        raise NotImplementedError

    def set_paid(self, *, payment_id: int, is_paid: bool, paid_at: Optional[datetime]) -> bool:
        raise NotImplementedError
