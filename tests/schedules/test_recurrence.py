from datetime import date

import pytest

from src.team_schedule.team_schedule.core.exceptions import ValidationError
from src.team_schedule.team_schedule.schedules.recurrence import (
    NO_RECURRENCE,
    MonthlyRecurrence,
    WeeklyRecurrence,
    build_recurrence,
    with_end_date,
)


def test_weekly_mon_wed_fri_gives_twelve_dates_in_four_weeks():
    rec = build_recurrence(rule="weekly", start=date(2025, 4, 7), days=[1, 3, 5])
    dates = list(rec.expand(date(2025, 4, 7), date(2025, 4, 7), date(2025, 5, 4)))

    assert len(dates) == 12
    assert dates[:3] == [date(2025, 4, 7), date(2025, 4, 9), date(2025, 4, 11)]
    assert dates[-1] == date(2025, 5, 2)
    assert {d.weekday() for d in dates} == {0, 2, 4}


def test_monthly_on_31st_clamps_and_comes_back():
    rec = build_recurrence(rule="monthly", start=date(2025, 1, 31))
    dates = list(rec.expand(date(2025, 1, 31), date(2025, 1, 1), date(2025, 5, 31)))

    assert dates == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
        date(2025, 5, 31),
    ]
    assert rec.occurs_on(date(2025, 1, 31), date(2025, 4, 30))


def test_daily_interval_starts_inside_window():
    rec = build_recurrence(rule="daily", start=date(2025, 4, 1), interval=2)
    dates = list(rec.expand(date(2025, 4, 1), date(2025, 4, 4), date(2025, 4, 10)))

    assert dates == [date(2025, 4, 5), date(2025, 4, 7), date(2025, 4, 9)]


def test_end_date_stops_expansion():
    rec = build_recurrence(rule="daily", start=date(2025, 4, 1), end_date=date(2025, 4, 3))
    dates = list(rec.expand(date(2025, 4, 1), date(2025, 4, 1), date(2025, 4, 30)))

    assert dates == [date(2025, 4, 1), date(2025, 4, 2), date(2025, 4, 3)]


def test_weekly_every_other_week():
    rec = build_recurrence(rule="weekly", start=date(2025, 4, 7), interval=2, days=[1])

    full = list(rec.expand(date(2025, 4, 7), date(2025, 4, 7), date(2025, 5, 10)))
    assert full == [date(2025, 4, 7), date(2025, 4, 21), date(2025, 5, 5)]

    # Window starting between two active weeks.
    later = list(rec.expand(date(2025, 4, 7), date(2025, 4, 14), date(2025, 4, 30)))
    assert later == [date(2025, 4, 21)]


def test_weekly_without_days_uses_start_weekday():
    rec = build_recurrence(rule="weekly", start=date(2025, 4, 9))
    dates = list(rec.expand(date(2025, 4, 9), date(2025, 4, 1), date(2025, 4, 30)))

    assert dates == [date(2025, 4, 9), date(2025, 4, 16), date(2025, 4, 23), date(2025, 4, 30)]


def test_expansion_is_restartable():
    rec = build_recurrence(rule="weekly", start=date(2025, 4, 7), days=[1, 3, 5])
    occ = rec.expand(date(2025, 4, 7), date(2025, 4, 7), date(2025, 4, 20))

    assert list(occ) == list(occ)


def test_no_rule_means_no_recurrence():
    assert build_recurrence(rule=None, start=date(2025, 4, 7)) is NO_RECURRENCE
    assert build_recurrence(rule="none", start=date(2025, 4, 7), days=[9]) is NO_RECURRENCE


@pytest.mark.parametrize(
    "kwargs",
    [
        {"rule": "yearly"},
        {"rule": "daily", "interval": 0},
        {"rule": "daily", "interval": "x"},
        {"rule": "weekly", "days": [7]},
        {"rule": "weekly", "days": [-1]},
        {"rule": "monthly", "end_date": date(2025, 4, 1)},
        {"rule": "monthly", "days": [1, 15]},
        {"rule": "monthly", "days": [32]},
    ],
)
def test_invalid_recurrence_is_rejected(kwargs):
    with pytest.raises(ValidationError):
        build_recurrence(start=date(2025, 4, 7), **kwargs)


def test_with_end_date_keeps_rule_fields():
    rec = build_recurrence(rule="weekly", start=date(2025, 4, 7), interval=2, days=[1, 3])
    capped = with_end_date(rec, date(2025, 5, 1))

    assert isinstance(capped, WeeklyRecurrence)
    assert capped.days == (1, 3)
    assert capped.interval == 2
    assert capped.end_date == date(2025, 5, 1)

    monthly = with_end_date(MonthlyRecurrence(interval=3), date(2026, 1, 1))
    assert isinstance(monthly, MonthlyRecurrence)
    assert monthly.interval == 3


def test_monthly_anchor_day_outlives_a_clamped_start():
    rec = build_recurrence(rule="monthly", start=date(2025, 4, 30), days=[31])
    dates = list(rec.expand(date(2025, 4, 30), date(2025, 4, 1), date(2025, 8, 31)))

    assert dates == [date(2025, 4, 30), date(2025, 5, 31), date(2025, 6, 30), date(2025, 7, 31), date(2025, 8, 31)]
    assert rec.days == (31,)
    assert with_end_date(rec, date(2025, 12, 31)).days == (31,)


def test_monthly_anchor_before_start_day_skips_the_first_month():
    rec = build_recurrence(rule="monthly", start=date(2025, 4, 20), days=[10], interval=2)

    assert list(rec.expand(date(2025, 4, 20), date(2025, 4, 1), date(2025, 9, 30))) == [
        date(2025, 6, 10),
        date(2025, 8, 10),
    ]


def test_weekly_end_date_is_inclusive():
    rec = build_recurrence(rule="weekly", start=date(2025, 4, 7), days=[1, 5], end_date=date(2025, 4, 18))

    assert list(rec.expand(date(2025, 4, 7), date(2025, 4, 1), date(2025, 4, 30))) == [
        date(2025, 4, 7),
        date(2025, 4, 11),
        date(2025, 4, 14),
        date(2025, 4, 18),
    ]
    assert not rec.occurs_on(date(2025, 4, 7), date(2025, 4, 21))
