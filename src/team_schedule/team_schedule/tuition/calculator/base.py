from __future__ import annotations

from abc import ABC, abstractmethod

from ...students.model import Student
from ...teams.model import Team
from ..model import TuitionLine


def total_amount(
    *,
    base_amount: int,
    discount: int,
    annual_fee: int,
    insurance_fee: int,
    entrance_fee: int,
    spot_fee: int,
) -> int:
    """base - discount + fees, never below 0."""
    return max(base_amount - discount + annual_fee + insurance_fee + entrance_fee + spot_fee, 0)


class TuitionCalculator(ABC):
    """Calculator interface (Strategy Pattern for tuition)."""

    @abstractmethod
    def line_for(self, *, team: Team, student: Student, month: int, sibling_discount: bool) -> TuitionLine:
        raise NotImplementedError
