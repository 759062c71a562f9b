from __future__ import annotations

from ...core.enums import PlayerType
from ...students.model import Student
from ...teams.model import Team
from ..model import TuitionLine
from .base import TuitionCalculator, total_amount


class StandardTuitionCalculator(TuitionCalculator):
    """Standard rule: fee by player type, sibling discount, annual/insurance fee in their month.

    Entrance and spot fees are manual edits and start at 0. Missing fees count as 0.
    """

    def line_for(self, *, team: Team, student: Student, month: int, sibling_discount: bool) -> TuitionLine:
        if student.player_type == PlayerType.SCHOOL:
            base = team.monthly_fee_school or 0
        else:
            base = team.monthly_fee_member or 0
        discount = (team.sibling_discount or 0) if sibling_discount else 0
        annual = (team.annual_fee or 0) if month == team.annual_fee_month else 0
        insurance = (team.insurance_fee or 0) if month == team.insurance_fee_month else 0

        return TuitionLine(
            student_id=student.student_id,
            category=student.player_type.value,
            base_amount=base,
            discount=discount,
            annual_fee=annual,
            insurance_fee=insurance,
            entrance_fee=0,
            spot_fee=0,
            amount=total_amount(
                base_amount=base,
                discount=discount,
                annual_fee=annual,
                insurance_fee=insurance,
                entrance_fee=0,
                spot_fee=0,
            ),
        )
