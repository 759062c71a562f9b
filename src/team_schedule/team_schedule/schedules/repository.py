from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Schedule


class ScheduleRepository(Protocol):
    """Persistence of standalone events, series heads and series members.

    Multi-row operations (split, forward delete, series delete, cancel) are
    single transactions: they either fully apply or not at all.
    """

    def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        raise NotImplementedError

    def create(self, schedule: Schedule) -> int:
        """Insert a standalone event or series head. Returns schedule_id."""

        raise NotImplementedError

    def update(self, schedule: Schedule) -> bool:
        raise NotImplementedError

    def list_range(self, *, team_id: int, start: date, end: date) -> Sequence[Schedule]:
        """Rows relevant to the window: standalone events and members dated (or slotted)
        inside it, plus every head whose series overlaps it. Tombstones included."""

        raise NotImplementedError

    def list_members(self, head_id: int) -> Sequence[Schedule]:
        raise NotImplementedError

    def get_member(self, *, head_id: int, occurrence_date: date) -> Optional[Schedule]:
        raise NotImplementedError

    def materialize_member(self, member: Schedule) -> int:
        """Insert a member for ``(parent_schedule_id, occurrence_date)`` or return the existing id."""

        raise NotImplementedError

    def propagate_from_head(self, head: Schedule) -> int:
        """Copy shared fields of ``head`` onto its non-exception members. Returns rows touched."""

        raise NotImplementedError

    def mark_exceptions(self, schedule_ids: Sequence[int]) -> None:
        raise NotImplementedError

    def delete_standalone(self, schedule_id: int) -> bool:
        raise NotImplementedError

    def cancel_occurrence(self, *, head: Schedule, occurrence_date: date) -> None:
        """Remove the member (and its attendances) at the slot and leave a tombstone."""

        raise NotImplementedError

    def delete_forward(self, *, head_id: int, from_date: date, new_end_date: date) -> int:
        """Delete members slotted on/after ``from_date`` and cap the head. Returns rows deleted."""

        raise NotImplementedError

    def delete_series(self, head_id: int) -> int:
        raise NotImplementedError

    def split_series(self, *, head_id: int, cap_date: date, new_head: Schedule) -> int:
        """Cap the old head at ``cap_date``, insert ``new_head`` and re-parent later members to it."""

        raise NotImplementedError
