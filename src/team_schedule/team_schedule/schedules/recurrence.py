"""Recurrence rules as a tagged variant and their lazy expansion into dates.

Weekday indices follow the calendar convention of the client: 0=Sunday ... 6=Saturday.
Every expansion is bounded by an explicit window; a series without an end date
is never enumerated in full.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import ClassVar, Iterable, Iterator, Optional

from dateutil.relativedelta import relativedelta
from dateutil.rrule import DAILY, FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from ..core.constants import MONTH_DAY_MAX, MONTH_DAY_MIN, WEEKDAY_MAX, WEEKDAY_MIN
from ..core.enums import RecurrenceRule
from ..core.exceptions import ValidationError

# Indexed by client weekday (0=Sunday).
_RRULE_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


def _at_midnight(d: date) -> datetime:
    return datetime.combine(d, time.min)


@dataclass(frozen=True)
class Occurrences:
    """Restartable view over the dates of one series inside a window."""

    recurrence: "Recurrence"
    start: date
    window_start: date
    window_end: date

    def __iter__(self) -> Iterator[date]:
        return self.recurrence.iter_occurrences(self.start, self.window_start, self.window_end)


@dataclass(frozen=True)
class Recurrence(ABC):
    interval: int = 1
    end_date: Optional[date] = None

    rule: ClassVar[RecurrenceRule]

    def expand(self, start: date, window_start: date, window_end: date) -> Occurrences:
        return Occurrences(self, start, window_start, window_end)

    def occurs_on(self, start: date, day: date) -> bool:
        return any(True for _ in self.iter_occurrences(start, day, day))

    def _last_day(self, window_end: date) -> date:
        if self.end_date is not None and self.end_date < window_end:
            return self.end_date
        return window_end

    @abstractmethod
    def iter_occurrences(self, start: date, window_start: date, window_end: date) -> Iterator[date]:
        raise NotImplementedError

    @property
    def days(self) -> tuple[int, ...]:
        return ()


@dataclass(frozen=True)
class NoRecurrence(Recurrence):
    rule: ClassVar[RecurrenceRule] = RecurrenceRule.NONE

    def iter_occurrences(self, start: date, window_start: date, window_end: date) -> Iterator[date]:
        if window_start <= start <= window_end:
            yield start


class _RRuleRecurrence(Recurrence):
    """Daily and weekly rules, expanded by dateutil's rrule."""

    freq: ClassVar[int]

    def _byweekday(self):
        return None

    def iter_occurrences(self, start: date, window_start: date, window_end: date) -> Iterator[date]:
        last = self._last_day(window_end)
        if window_start > last:
            return
        rule = rrule(
            self.freq,
            dtstart=_at_midnight(start),
            interval=self.interval,
            byweekday=self._byweekday(),
            wkst=SU,
            until=_at_midnight(self.end_date) if self.end_date else None,
        )
        for dt in rule.between(_at_midnight(window_start), _at_midnight(last), inc=True):
            yield dt.date()


@dataclass(frozen=True)
class DailyRecurrence(_RRuleRecurrence):
    rule: ClassVar[RecurrenceRule] = RecurrenceRule.DAILY
    freq: ClassVar[int] = DAILY


@dataclass(frozen=True)
class WeeklyRecurrence(_RRuleRecurrence):
    weekdays: frozenset[int] = frozenset()

    rule: ClassVar[RecurrenceRule] = RecurrenceRule.WEEKLY
    freq: ClassVar[int] = WEEKLY

    @property
    def days(self) -> tuple[int, ...]:
        return tuple(sorted(self.weekdays))

    def _byweekday(self):
        # None lets rrule fall back to the start date's weekday.
        return tuple(_RRULE_WEEKDAYS[d] for d in self.days) or None


@dataclass(frozen=True)
class MonthlyRecurrence(Recurrence):
    """Same day of month every ``interval`` months, clamped to short months.

    ``day_of_month`` pins the anchor when it differs from the start date, which
    happens when a series is split on a clamped date (the 30th of a 31st series).
    """

    day_of_month: Optional[int] = None

    rule: ClassVar[RecurrenceRule] = RecurrenceRule.MONTHLY

    @property
    def days(self) -> tuple[int, ...]:
        return (self.day_of_month,) if self.day_of_month else ()

    def iter_occurrences(self, start: date, window_start: date, window_end: date) -> Iterator[date]:
        last = self._last_day(window_end)
        anchor = self.day_of_month or start.day
        k = 0
        if window_start > start:
            months = (window_start.year - start.year) * 12 + (window_start.month - start.month)
            k = max(0, months // self.interval)
        while True:
            # Offsets are taken from the original start so the 31st comes back after a 30-day month.
            current = start + relativedelta(months=k * self.interval, day=anchor)
            if current > last:
                return
            if current >= start and current >= window_start:
                yield current
            k += 1


NO_RECURRENCE = NoRecurrence()

_BY_RULE: dict[RecurrenceRule, type[Recurrence]] = {
    RecurrenceRule.NONE: NoRecurrence,
    RecurrenceRule.DAILY: DailyRecurrence,
    RecurrenceRule.WEEKLY: WeeklyRecurrence,
    RecurrenceRule.MONTHLY: MonthlyRecurrence,
}


def _int_days(days: Optional[Iterable[int]], what: str) -> frozenset[int]:
    try:
        return frozenset(int(d) for d in (days or ()))
    except (TypeError, ValueError):
        raise ValidationError(f"recurrenceDays must contain {what}")


def build_recurrence(
    *,
    rule: str | RecurrenceRule | None,
    start: date,
    interval: Optional[int] = 1,
    days: Optional[Iterable[int]] = None,
    end_date: Optional[date] = None,
) -> Recurrence:
    """Validate flat recurrence fields and return the matching variant.

    ``days`` holds weekday indices for weekly rules and at most one day of month
    for monthly rules. Invalid input raises ValidationError; nothing is clamped.
    """
    if isinstance(rule, RecurrenceRule):
        rule_enum = rule
    else:
        try:
            rule_enum = RecurrenceRule((rule or RecurrenceRule.NONE.value).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown recurrence rule: {rule!r}")

    if rule_enum == RecurrenceRule.NONE:
        # days/end date are meaningless without a rule.
        return NO_RECURRENCE

    try:
        interval_i = int(interval if interval is not None else 1)
    except (TypeError, ValueError):
        raise ValidationError("recurrenceInterval must be an integer")
    if interval_i < 1:
        raise ValidationError("recurrenceInterval must be >= 1")

    if end_date is not None and end_date < start:
        raise ValidationError("recurrenceEndDate must not be before the start date")

    if rule_enum == RecurrenceRule.WEEKLY:
        weekdays = _int_days(days, "weekday indices")
        if any(d < WEEKDAY_MIN or d > WEEKDAY_MAX for d in weekdays):
            raise ValidationError("recurrenceDays must be between 0 (Sunday) and 6 (Saturday)")
        return WeeklyRecurrence(interval=interval_i, end_date=end_date, weekdays=weekdays)

    if rule_enum == RecurrenceRule.MONTHLY:
        anchors = _int_days(days, "a day of month")
        if len(anchors) > 1 or any(d < MONTH_DAY_MIN or d > MONTH_DAY_MAX for d in anchors):
            raise ValidationError("monthly recurrenceDays takes a single day between 1 and 31")
        anchor = next(iter(anchors), None)
        return MonthlyRecurrence(interval=interval_i, end_date=end_date, day_of_month=anchor)

    return _BY_RULE[rule_enum](interval=interval_i, end_date=end_date)


def with_end_date(recurrence: Recurrence, end_date: Optional[date]) -> Recurrence:
    if isinstance(recurrence, NoRecurrence):
        return recurrence
    return replace(recurrence, end_date=end_date)
