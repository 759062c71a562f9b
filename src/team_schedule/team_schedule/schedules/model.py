from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, time
from typing import Optional

from ..core.constants import VENUE_UNDECIDED
from .recurrence import NO_RECURRENCE, NoRecurrence, Recurrence


@dataclass(frozen=True)
class Schedule:
    """Persisted event row: standalone event, series head, or series member.

    - head: ``parent_schedule_id is None`` and a recurrence rule is set
    - member: ``parent_schedule_id`` set; ``occurrence_date`` is the rule slot it covers
    - tombstone: member with ``is_cancelled`` that hides one occurrence
    """

    schedule_id: int
    team_id: int
    title: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    gather_time: Optional[time] = None
    venue: Optional[str] = None
    notes: Optional[str] = None
    category_ids: tuple[int, ...] = ()
    student_can_register: bool = True
    recurrence: Recurrence = field(default=NO_RECURRENCE)
    parent_schedule_id: Optional[int] = None
    occurrence_date: Optional[date] = None
    is_exception: bool = False
    is_cancelled: bool = False

    @property
    def is_series_head(self) -> bool:
        return self.parent_schedule_id is None and not isinstance(self.recurrence, NoRecurrence)

    @property
    def is_series_member(self) -> bool:
        return self.parent_schedule_id is not None

    @property
    def series_id(self) -> int:
        return self.parent_schedule_id if self.parent_schedule_id is not None else self.schedule_id

    @property
    def venue_label(self) -> str:
        return venue_label(self.venue)


@dataclass(frozen=True)
class ScheduleInstance:
    """One dated occurrence as shown on a calendar.

    ``schedule_id`` is None for a virtual instance (computed from the head's rule, not stored).
    """

    series_id: int
    schedule_id: Optional[int]
    team_id: int
    occurrence_date: date
    date: date
    title: str
    start_time: Optional[time]
    end_time: Optional[time]
    gather_time: Optional[time]
    venue: Optional[str]
    notes: Optional[str]
    category_ids: tuple[int, ...]
    student_can_register: bool
    is_virtual: bool = False
    is_exception: bool = False

    @property
    def venue_label(self) -> str:
        return venue_label(self.venue)

    @property
    def key(self) -> tuple[int, date]:
        return (self.series_id, self.occurrence_date)


def venue_label(venue: Optional[str], undecided: str = VENUE_UNDECIDED) -> str:
    v = (venue or "").strip()
    return v or undecided


def instance_from_row(row: Schedule) -> ScheduleInstance:
    return ScheduleInstance(
        series_id=row.series_id,
        schedule_id=row.schedule_id,
        team_id=row.team_id,
        occurrence_date=row.occurrence_date or row.date,
        date=row.date,
        title=row.title,
        start_time=row.start_time,
        end_time=row.end_time,
        gather_time=row.gather_time,
        venue=row.venue,
        notes=row.notes,
        category_ids=row.category_ids,
        student_can_register=row.student_can_register,
        is_virtual=False,
        is_exception=row.is_exception,
    )


def virtual_instance(head: Schedule, occurrence: date) -> ScheduleInstance:
    return ScheduleInstance(
        series_id=head.schedule_id,
        schedule_id=None,
        team_id=head.team_id,
        occurrence_date=occurrence,
        date=occurrence,
        title=head.title,
        start_time=head.start_time,
        end_time=head.end_time,
        gather_time=head.gather_time,
        venue=head.venue,
        notes=head.notes,
        category_ids=head.category_ids,
        student_can_register=head.student_can_register,
        is_virtual=True,
    )


def member_from_head(head: Schedule, occurrence: date) -> Schedule:
    """Series member carrying the head's fields for one rule slot."""
    return Schedule(
        schedule_id=0,
        team_id=head.team_id,
        title=head.title,
        date=occurrence,
        start_time=head.start_time,
        end_time=head.end_time,
        gather_time=head.gather_time,
        venue=head.venue,
        notes=head.notes,
        category_ids=head.category_ids,
        student_can_register=head.student_can_register,
        parent_schedule_id=head.schedule_id,
        occurrence_date=occurrence,
    )


@dataclass(frozen=True)
class ScheduleDraft:
    """Typed input for creating or replacing a head / standalone event."""

    title: str
    date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    gather_time: Optional[time] = None
    venue: Optional[str] = None
    notes: Optional[str] = None
    category_ids: tuple[int, ...] = ()
    student_can_register: bool = True
    recurrence_rule: Optional[str] = None
    recurrence_interval: Optional[int] = 1
    recurrence_days: tuple[int, ...] = ()
    recurrence_end_date: Optional[date] = None
