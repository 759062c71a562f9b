from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from src.team_schedule.team_schedule.core.enums import PlayerType, Role
from src.team_schedule.team_schedule.core.exceptions import (
    AuthorizationError,
    ConsistencyGuardError,
    NotFoundError,
    ValidationError,
)
from src.team_schedule.team_schedule.teams.model import Team

COACH = dict(team_id=1, actor_id=100, current_role=Role.COACH)


@pytest.fixture()
def svc(world):
    # Keep insurance out of April so the annual fee is the only extra.
    team = world.teams_repo.get_by_id(1)
    world.teams_repo.add(replace(team, insurance_fee_month=9))
    return world.tuition_service


def amounts(svc, year=2025, month=4):
    return {p.student_id: p.amount for p in svc.list_for_month(team_id=1, year=year, month=month)}


def payment_of(svc, student_id, year=2025, month=4):
    return next(p for p in svc.list_for_month(team_id=1, year=year, month=month) if p.student_id == student_id)


def approve_siblings(world, a, b):
    link = world.student_service.link_siblings(team_id=1, actor_id=a, student_id=a, sibling_student_id=b)
    world.student_service.approve_sibling_link(link_id=link.link_id, **COACH)


def test_april_bills_base_fee_plus_annual_fee(svc):
    result = svc.generate(year=2025, month=4, **COACH)

    assert result.generated == 3
    # Inactive student 4 is not billed.
    assert amounts(svc) == {1: 5000 + 6000, 2: 5000 + 6000, 3: 3000 + 6000}

    row = payment_of(svc, 1)
    assert (row.category, row.base_amount, row.annual_fee, row.insurance_fee) == ("team", 5000, 6000, 0)
    assert not row.is_paid


def test_other_months_bill_base_fee_only(svc):
    svc.generate(year=2025, month=5, **COACH)

    assert amounts(svc, month=5) == {1: 5000, 2: 5000, 3: 3000}


def test_insurance_is_billed_in_its_month(svc):
    svc.generate(year=2025, month=9, **COACH)

    assert amounts(svc, month=9) == {1: 5800, 2: 5800, 3: 3800}


def test_generate_is_idempotent(svc):
    svc.generate(year=2025, month=4, **COACH)
    again = svc.generate(year=2025, month=4, **COACH)

    assert again.generated == 0
    assert len(svc.list_for_month(team_id=1, year=2025, month=4)) == 3


def test_generate_fills_gaps_only(world, svc):
    svc.generate(year=2025, month=4, **COACH)
    world.student_service.set_player_type(student_id=4, player_type="team", **COACH)

    result = svc.generate(year=2025, month=4, **COACH)

    assert result.generated == 1
    assert amounts(svc)[4] == 11000


def test_sibling_discount_applies_to_both_billed_students(world, svc):
    approve_siblings(world, 2, 1)

    svc.generate(year=2025, month=5, **COACH)

    assert amounts(svc, month=5) == {1: 4000, 2: 4000, 3: 3000}
    assert payment_of(svc, 1, month=5).discount == 1000


def test_pending_or_inactive_sibling_gives_no_discount(world, svc):
    world.student_service.link_siblings(team_id=1, actor_id=1, student_id=1, sibling_student_id=2)
    approve_siblings(world, 3, 4)

    svc.generate(year=2025, month=5, **COACH)

    assert amounts(svc, month=5) == {1: 5000, 2: 5000, 3: 3000}


def test_missing_fee_settings_bill_zero(world):
    world.teams_repo.add(Team(team_id=1, name="Demo FC"))

    world.tuition_service.generate(year=2025, month=4, **COACH)

    assert set(amounts(world.tuition_service).values()) == {0}


def test_team_without_students_generates_nothing(world):
    world.teams_repo.add(Team(team_id=3, name="Empty FC"))

    result = world.tuition_service.generate(team_id=3, actor_id=100, current_role=Role.COACH, year=2025, month=4)

    assert (result.generated, result.deleted, result.skipped_paid) == (0, 0, 0)


def test_reset_unpaid_keeps_paid_rows(world, svc):
    svc.generate(year=2025, month=5, **COACH)
    paid = svc.mark_paid(payment_id=payment_of(svc, 1, month=5).payment_id, **COACH)
    before = payment_of(svc, 1, month=5)
    world.team_service.update_fees(changes={"monthly_fee_member": 6000}, **COACH)

    result = svc.reset_unpaid(year=2025, month=5, **COACH)

    assert (result.generated, result.deleted, result.skipped_paid) == (2, 2, 1)
    assert amounts(svc, month=5) == {1: 5000, 2: 6000, 3: 3000}
    kept = payment_of(svc, 1, month=5)
    assert kept == before
    assert kept.payment_id == paid.payment_id
    assert kept.is_paid


def test_reset_unpaid_discards_manual_edits(svc):
    svc.generate(year=2025, month=5, **COACH)
    edited = svc.update_payment(payment_id=payment_of(svc, 2, month=5).payment_id, changes={"spot_fee": 500}, **COACH)
    assert edited.amount == 5500

    svc.reset_unpaid(year=2025, month=5, **COACH)

    assert amounts(svc, month=5)[2] == 5000


def test_paid_row_is_guarded(svc):
    svc.generate(year=2025, month=4, **COACH)
    row = payment_of(svc, 1)
    svc.mark_paid(payment_id=row.payment_id, paid_at=datetime(2025, 4, 20, 10, 0), **COACH)

    with pytest.raises(ConsistencyGuardError):
        svc.update_payment(payment_id=row.payment_id, changes={"discount": 500}, **COACH)

    svc.mark_unpaid(payment_id=row.payment_id, **COACH)
    updated = svc.update_payment(payment_id=row.payment_id, changes={"discount": 500}, **COACH)
    assert updated.amount == 10500
    assert updated.paid_at is None


def test_update_payment_with_explicit_amount(svc):
    svc.generate(year=2025, month=4, **COACH)
    row = payment_of(svc, 3)

    updated = svc.update_payment(payment_id=row.payment_id, changes={"amount": 1234, "category": "team"}, **COACH)

    assert updated.amount == 1234
    assert updated.category == "team"
    assert updated.base_amount == 3000


@pytest.mark.parametrize(
    "changes",
    [{"spot_fee": -1}, {"spot_fee": "x"}, {"tip": 100}, {"category": "vip"}],
)
def test_update_payment_validates(svc, changes):
    svc.generate(year=2025, month=4, **COACH)

    with pytest.raises(ValidationError):
        svc.update_payment(payment_id=payment_of(svc, 1).payment_id, changes=changes, **COACH)


def test_discount_never_drives_amount_below_zero(svc):
    svc.generate(year=2025, month=5, **COACH)

    updated = svc.update_payment(payment_id=payment_of(svc, 3, month=5).payment_id, changes={"discount": 9999}, **COACH)

    assert updated.amount == 0


def test_summary(svc):
    svc.generate(year=2025, month=5, **COACH)
    svc.mark_paid(payment_id=payment_of(svc, 3, month=5).payment_id, **COACH)

    s = svc.summary(team_id=1, year=2025, month=5)

    assert (s.count, s.paid_count, s.total, s.collected, s.outstanding) == (3, 1, 13000, 3000, 10000)


def test_payment_of_other_team_is_not_found(svc):
    svc.generate(year=2025, month=4, **COACH)
    row = payment_of(svc, 1)

    with pytest.raises(NotFoundError):
        svc.mark_paid(team_id=2, actor_id=100, current_role=Role.COACH, payment_id=row.payment_id)


@pytest.mark.parametrize("month", [0, 13, "April"])
def test_period_is_validated(svc, month):
    with pytest.raises(ValidationError):
        svc.generate(year=2025, month=month, **COACH)


def test_students_cannot_bill(svc):
    with pytest.raises(AuthorizationError):
        svc.generate(team_id=1, actor_id=1, current_role=Role.STUDENT, year=2025, month=4)


def test_player_type_drives_category(world, svc):
    world.student_service.set_player_type(student_id=1, player_type=PlayerType.SCHOOL.value, **COACH)

    svc.generate(year=2025, month=5, **COACH)

    row = payment_of(svc, 1, month=5)
    assert (row.category, row.amount) == ("school", 3000)
