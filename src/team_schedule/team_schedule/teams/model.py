from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_MONTH_ANNUAL_FEE


@dataclass(frozen=True)
class Team:
    """Tenant boundary; owns the fee configuration used by tuition generation.

    Fee fields are nullable: a missing fee is billed as 0, never an error.
    """

    team_id: int
    name: str
    monthly_fee_member: Optional[int] = None
    monthly_fee_school: Optional[int] = None
    sibling_discount: Optional[int] = None
    annual_fee: Optional[int] = None
    entrance_fee: Optional[int] = None
    insurance_fee: Optional[int] = None
    annual_fee_month: int = DEFAULT_MONTH_ANNUAL_FEE
    insurance_fee_month: int = DEFAULT_MONTH_ANNUAL_FEE


FEE_FIELDS = (
    "monthly_fee_member",
    "monthly_fee_school",
    "sibling_discount",
    "annual_fee",
    "entrance_fee",
    "insurance_fee",
)
MONTH_FIELDS = ("annual_fee_month", "insurance_fee_month")
