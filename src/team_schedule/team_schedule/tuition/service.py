from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..activity.service import ActivityLog
from ..common.app_logger import get_logger
from ..common.datetime_utils import now_local
from ..common.validators import require_month, require_non_negative_int, require_positive_int
from ..core.enums import PlayerType, Role, SiblingLinkStatus
from ..core.exceptions import AuthorizationError, ConsistencyGuardError, NotFoundError, ValidationError
from ..students.repository import StudentRepository
from ..teams.service import TeamService
from .calculator.base import TuitionCalculator, total_amount
from .calculator.standard_calculator import StandardTuitionCalculator
from .model import AMOUNT_FIELDS, GenerationResult, MonthlySummary, TuitionLine, TuitionPayment
from .repository import TuitionRepository

logger = get_logger("tuition")

_BILLABLE = tuple(t for t in PlayerType if t.is_billable)
_COMPONENTS = ("base_amount", "discount", "annual_fee", "insurance_fee", "entrance_fee", "spot_fee")


class TuitionService:
    """Monthly tuition generation and repair.

    Paid rows are never recalculated: generation only fills gaps and
    reset-unpaid only rebuilds rows that are still unpaid.
    """

    def __init__(
        self,
        payments: TuitionRepository,
        teams: TeamService,
        students: StudentRepository,
        activity: ActivityLog,
        *,
        calculator: Optional[TuitionCalculator] = None,
    ):
        self._payments = payments
        self._teams = teams
        self._students = students
        self._activity = activity
        self._calculator = calculator or StandardTuitionCalculator()

    @staticmethod
    def _require_coach(role: Role) -> None:
        if role != Role.COACH:
            raise AuthorizationError("Only coaches can manage tuition")

    @staticmethod
    def _period(year: Any, month: Any) -> tuple[int, int]:
        return require_positive_int(year, "year"), require_month(month)

    def _lines(self, team_id: int, month: int) -> list[TuitionLine]:
        team = self._teams.get(team_id)
        billed = list(self._students.list_for_team(int(team_id), player_types=_BILLABLE))
        billed_ids = {s.student_id for s in billed}

        with_sibling: set[int] = set()
        for link in self._students.list_sibling_links(int(team_id), status=SiblingLinkStatus.APPROVED):
            if link.student_id in billed_ids and link.sibling_student_id in billed_ids:
                with_sibling.update((link.student_id, link.sibling_student_id))

        return [
            self._calculator.line_for(
                team=team, student=s, month=month, sibling_discount=s.student_id in with_sibling
            )
            for s in billed
        ]

    def _payment(self, team_id: int, payment_id: int) -> TuitionPayment:
        p = self._payments.get_by_id(int(payment_id))
        if not p or p.team_id != int(team_id):
            raise NotFoundError(f"Tuition payment {payment_id} not found")
        return p

    def generate(
        self, *, team_id: int, actor_id: Optional[int], current_role: Role, year: Any, month: Any
    ) -> GenerationResult:
        """Create missing rows for the month; existing rows (paid or not) are left as they are."""
        self._require_coach(current_role)
        year, month = self._period(year, month)
        lines = self._lines(team_id, month)
        if not lines:
            logger.info("team=%s %04d-%02d: no billable students, nothing generated", team_id, year, month)
            return GenerationResult()

        inserted = self._payments.insert_missing(team_id=int(team_id), year=year, month=month, lines=lines)
        paid = sum(1 for p in self._payments.list_for_month(team_id=int(team_id), year=year, month=month) if p.is_paid)
        result = GenerationResult(generated=inserted, skipped_paid=paid)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="tuition.generated",
            entity_type="team", entity_id=int(team_id), year=year, month=month, generated=inserted,
        )
        return result

    def reset_unpaid(
        self, *, team_id: int, actor_id: Optional[int], current_role: Role, year: Any, month: Any
    ) -> GenerationResult:
        """Rebuild every unpaid row of the month from the current fee settings.

        Manual edits on unpaid rows are discarded.
        """
        self._require_coach(current_role)
        year, month = self._period(year, month)
        lines = self._lines(team_id, month)

        existing = self._payments.list_for_month(team_id=int(team_id), year=year, month=month)
        paid = [p for p in existing if p.is_paid]
        by_student = {line.student_id: line for line in lines}
        overridden = [
            p.payment_id
            for p in existing
            if not p.is_paid
            and (
                p.student_id not in by_student
                or any(getattr(p, f) != getattr(by_student[p.student_id], f) for f in AMOUNT_FIELDS)
            )
        ]
        if overridden:
            logger.warning(
                "team=%s %04d-%02d: reset discards manual changes on payments %s", team_id, year, month, overridden
            )

        deleted, inserted = self._payments.replace_unpaid(team_id=int(team_id), year=year, month=month, lines=lines)
        result = GenerationResult(generated=inserted, deleted=deleted, skipped_paid=len(paid))
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="tuition.reset_unpaid",
            entity_type="team", entity_id=int(team_id), year=year, month=month,
            deleted=deleted, generated=inserted, skipped_paid=len(paid),
        )
        return result

    def update_payment(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        payment_id: int,
        changes: Mapping[str, Any],
    ) -> TuitionPayment:
        """Manual edit of an unpaid row. Without an explicit ``amount`` the total is recomputed."""
        self._require_coach(current_role)
        p = self._payment(team_id, payment_id)
        if p.is_paid:
            logger.warning("team=%s actor=%s tried to edit paid payment %s", team_id, actor_id, p.payment_id)
            raise ConsistencyGuardError(f"Tuition payment {p.payment_id} is already paid; mark it unpaid first")

        unknown = set(changes) - set(AMOUNT_FIELDS) - {"category"}
        if unknown:
            raise ValidationError(f"Unknown tuition fields: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {
            name: require_non_negative_int(changes[name], name) for name in AMOUNT_FIELDS if name in changes
        }
        if "category" in changes:
            category = changes["category"]
            if category is not None and category not in {t.value for t in _BILLABLE}:
                raise ValidationError(f"Unknown tuition category: {category!r}")
            values["category"] = category

        updated = replace(p, **values)
        if "amount" not in values:
            updated = replace(updated, amount=total_amount(**{f: getattr(updated, f) for f in _COMPONENTS}))

        self._payments.update_amounts(updated)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="tuition.updated",
            entity_type="tuition_payment", entity_id=p.payment_id, **values,
        )
        return self._payment(team_id, p.payment_id)

    def mark_paid(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        payment_id: int,
        paid_at: Optional[datetime] = None,
    ) -> TuitionPayment:
        self._require_coach(current_role)
        p = self._payment(team_id, payment_id)
        self._payments.set_paid(payment_id=p.payment_id, is_paid=True, paid_at=paid_at or now_local())
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="tuition.paid",
            entity_type="tuition_payment", entity_id=p.payment_id, amount=p.amount,
        )
        return self._payment(team_id, p.payment_id)

    def mark_unpaid(
        self, *, team_id: int, actor_id: Optional[int], current_role: Role, payment_id: int
    ) -> TuitionPayment:
        self._require_coach(current_role)
        p = self._payment(team_id, payment_id)
        self._payments.set_paid(payment_id=p.payment_id, is_paid=False, paid_at=None)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="tuition.unpaid",
            entity_type="tuition_payment", entity_id=p.payment_id,
        )
        return self._payment(team_id, p.payment_id)

    def list_for_month(self, *, team_id: int, year: Any, month: Any) -> Sequence[TuitionPayment]:
        year, month = self._period(year, month)
        return list(self._payments.list_for_month(team_id=int(team_id), year=year, month=month))

    def summary(self, *, team_id: int, year: Any, month: Any) -> MonthlySummary:
        rows = self.list_for_month(team_id=team_id, year=year, month=month)
        year, month = self._period(year, month)
        return MonthlySummary(
            year=year,
            month=month,
            count=len(rows),
            paid_count=sum(1 for p in rows if p.is_paid),
            total=sum(p.amount for p in rows),
            collected=sum(p.amount for p in rows if p.is_paid),
        )
