from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class TuitionPayment:
    """One student's bill for one month. Unique per (student_id, year, month)."""

    payment_id: int
    student_id: int
    team_id: int
    year: int
    month: int
    category: Optional[str] = None
    base_amount: int = 0
    discount: int = 0
    annual_fee: int = 0
    entrance_fee: int = 0
    insurance_fee: int = 0
    spot_fee: int = 0
    amount: int = 0
    is_paid: bool = False
    paid_at: Optional[datetime] = None


@dataclass(frozen=True)
class TuitionLine:
    """Calculated, not yet persisted bill for one student."""

    student_id: int
    category: Optional[str]
    base_amount: int
    discount: int
    annual_fee: int
    insurance_fee: int
    entrance_fee: int
    spot_fee: int
    amount: int


@dataclass(frozen=True)
class GenerationResult:
    generated: int = 0
    deleted: int = 0
    skipped_paid: int = 0


@dataclass(frozen=True)
class MonthlySummary:
    year: int
    month: int
    count: int
    paid_count: int
    total: int
    collected: int

    @property
    def outstanding(self) -> int:
        return self.total - self.collected


AMOUNT_FIELDS = (
    "base_amount",
    "discount",
    "annual_fee",
    "entrance_fee",
    "insurance_fee",
    "spot_fee",
    "amount",
)
