from __future__ import annotations

from dataclasses import fields, replace
from datetime import date, time, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..activity.service import ActivityLog
from ..categories.repository import CategoryRepository
from ..common.app_logger import get_logger
from ..common.validators import require_non_empty
from ..core.constants import MAX_EXPANSION_DAYS
from ..core.enums import DeleteScope, RecurrenceRule, Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import (
    Schedule,
    ScheduleDraft,
    ScheduleInstance,
    instance_from_row,
    member_from_head,
    virtual_instance,
)
from .recurrence import MonthlyRecurrence, build_recurrence
from .repository import ScheduleRepository

logger = get_logger("schedules")

_RECURRENCE_KEYS = ("recurrence_rule", "recurrence_interval", "recurrence_days", "recurrence_end_date")
_EDITABLE_KEYS = frozenset(f.name for f in fields(ScheduleDraft))


def _draft_of(s: Schedule) -> ScheduleDraft:
    rec = s.recurrence
    return ScheduleDraft(
        title=s.title,
        date=s.date,
        start_time=s.start_time,
        end_time=s.end_time,
        gather_time=s.gather_time,
        venue=s.venue,
        notes=s.notes,
        category_ids=s.category_ids,
        student_can_register=s.student_can_register,
        recurrence_rule=rec.rule.value,
        recurrence_interval=rec.interval,
        recurrence_days=rec.days,
        recurrence_end_date=rec.end_date,
    )


def _with_changes(draft: ScheduleDraft, changes: Mapping[str, Any]) -> ScheduleDraft:
    # Days belong to the old rule (weekdays vs. day of month) once the rule kind changes.
    if "recurrence_rule" in changes and "recurrence_days" not in changes:
        if _rule_name(changes["recurrence_rule"]) != _rule_name(draft.recurrence_rule):
            draft = replace(draft, recurrence_days=())
    return replace(draft, **changes)


def _rule_name(rule: Any) -> str:
    return str(getattr(rule, "value", rule) or RecurrenceRule.NONE.value).strip().lower()


def _check_changes(changes: Mapping[str, Any]) -> None:
    unknown = sorted(set(changes) - _EDITABLE_KEYS)
    if unknown:
        raise ValidationError(f"Unknown schedule fields: {', '.join(unknown)}")


def _sort_key(i: ScheduleInstance):
    return (i.date, i.start_time or time.min, i.title)


def _first_occurrence(head: Schedule) -> date:
    window_end = head.date + timedelta(days=MAX_EXPANSION_DAYS)
    return next(iter(head.recurrence.expand(head.date, head.date, window_end)), head.date)


class ScheduleService:
    """Schedule store: standalone events, recurring series and their effective instances."""

    def __init__(self, schedules: ScheduleRepository, categories: CategoryRepository, activity: ActivityLog):
        self._schedules = schedules
        self._categories = categories
        self._activity = activity

    @staticmethod
    def _require_coach(role: Role) -> None:
        if role != Role.COACH:
            raise AuthorizationError("Only coaches can manage schedules")

    def _validate_categories(self, team_id: int, category_ids: Iterable[Any]) -> tuple[int, ...]:
        known = {c.category_id for c in self._categories.list_for_team(int(team_id))}
        out: list[int] = []
        for raw in category_ids or ():
            try:
                cid = int(raw)
            except (TypeError, ValueError):
                raise ValidationError("categoryIds must contain integer ids")
            if cid not in known:
                raise ValidationError(f"Unknown category: {cid}")
            if cid not in out:
                out.append(cid)
        return tuple(out)

    def _build(self, *, team_id: int, draft: ScheduleDraft, schedule_id: int = 0) -> Schedule:
        title = require_non_empty(draft.title, "title")
        if not isinstance(draft.date, date):
            raise ValidationError("date is required")
        if draft.start_time and draft.end_time and draft.end_time < draft.start_time:
            raise ValidationError("endTime must not be before startTime")

        recurrence = build_recurrence(
            rule=draft.recurrence_rule,
            start=draft.date,
            interval=draft.recurrence_interval,
            days=draft.recurrence_days,
            end_date=draft.recurrence_end_date,
        )
        return Schedule(
            schedule_id=int(schedule_id),
            team_id=int(team_id),
            title=title,
            date=draft.date,
            start_time=draft.start_time,
            end_time=draft.end_time,
            gather_time=draft.gather_time,
            venue=(draft.venue or "").strip() or None,
            notes=(draft.notes or "").strip() or None,
            category_ids=self._validate_categories(team_id, draft.category_ids),
            student_can_register=bool(draft.student_can_register),
            recurrence=recurrence,
        )

    # -------- reads --------
    def get(self, *, team_id: int, schedule_id: int) -> Schedule:
        s = self._schedules.get_by_id(int(schedule_id))
        if not s or s.team_id != int(team_id) or s.is_cancelled:
            raise NotFoundError(f"Schedule {schedule_id} not found")
        return s

    def list_effective_instances(
        self,
        *,
        team_id: int,
        start: date,
        end: date,
        category_id: Optional[int] = None,
    ) -> list[ScheduleInstance]:
        """Calendar view of ``[start, end]``.

        Stored rows win over virtual occurrences of the same ``(series, slot)``;
        tombstones hide their slot.
        """
        if end < start:
            raise ValidationError("'to' must not be before 'from'")
        if (end - start).days > MAX_EXPANSION_DAYS:
            raise ValidationError(f"Date range must not exceed {MAX_EXPANSION_DAYS} days")

        rows = self._schedules.list_range(team_id=int(team_id), start=start, end=end)
        heads = [r for r in rows if r.is_series_head]

        instances: dict[tuple[int, date], ScheduleInstance] = {}
        covered: set[tuple[int, date]] = set()
        for r in rows:
            if r.is_series_head:
                continue
            if r.is_series_member:
                covered.add((r.parent_schedule_id, r.occurrence_date))
            if r.is_cancelled or not (start <= r.date <= end):
                continue
            inst = instance_from_row(r)
            instances.setdefault(inst.key, inst)

        for head in heads:
            for occurrence in head.recurrence.expand(head.date, start, end):
                key = (head.schedule_id, occurrence)
                if key in covered or key in instances:
                    continue
                instances[key] = virtual_instance(head, occurrence)

        result = list(instances.values())
        if category_id is not None:
            result = [i for i in result if int(category_id) in i.category_ids]
        result.sort(key=_sort_key)
        return result

    def materialize_instance(self, *, team_id: int, head_id: int, occurrence_date: Optional[date] = None) -> Schedule:
        """Stored member row for one occurrence of a series, created if still virtual."""
        head = self.get(team_id=team_id, schedule_id=head_id)
        if not head.is_series_head:
            raise ValidationError(f"Schedule {head_id} is not a recurring series")
        occurrence_date = occurrence_date or _first_occurrence(head)

        existing = self._schedules.get_member(head_id=head.schedule_id, occurrence_date=occurrence_date)
        if existing is not None:
            if existing.is_cancelled:
                raise NotFoundError(f"Occurrence {occurrence_date} of schedule {head_id} was deleted")
            return existing

        if not head.recurrence.occurs_on(head.date, occurrence_date):
            raise NotFoundError(f"Schedule {head_id} has no occurrence on {occurrence_date}")

        member_id = self._schedules.materialize_member(member_from_head(head, occurrence_date))
        member = self._schedules.get_by_id(member_id)
        if member is None or member.is_cancelled:
            raise NotFoundError(f"Occurrence {occurrence_date} of schedule {head_id} was deleted")
        logger.info("Materialized schedule %s occurrence %s as #%s", head_id, occurrence_date, member_id)
        return member

    def resolve_instance(self, *, team_id: int, schedule_id: int, occurrence_date: Optional[date] = None) -> Schedule:
        """Concrete row for an instance reference (id, or head id + occurrence date)."""
        row = self.get(team_id=team_id, schedule_id=schedule_id)
        if row.is_series_head:
            return self.materialize_instance(team_id=team_id, head_id=row.schedule_id, occurrence_date=occurrence_date)
        if occurrence_date is not None and occurrence_date not in (row.date, row.occurrence_date):
            raise NotFoundError(f"Schedule {schedule_id} is not on {occurrence_date}")
        return row

    def stored_instance(
        self, *, team_id: int, schedule_id: int, occurrence_date: Optional[date] = None
    ) -> Optional[Schedule]:
        """Like ``resolve_instance`` but never materializes; None for a still-virtual occurrence."""
        row = self.get(team_id=team_id, schedule_id=schedule_id)
        if not row.is_series_head:
            return row
        member = self._schedules.get_member(
            head_id=row.schedule_id, occurrence_date=occurrence_date or _first_occurrence(row)
        )
        return member if member is not None and not member.is_cancelled else None

    # -------- writes --------
    def upsert_head(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        draft: ScheduleDraft,
        schedule_id: Optional[int] = None,
    ) -> Schedule:
        """Create a standalone event / series head, or replace an existing one."""
        self._require_coach(current_role)
        if schedule_id is None:
            schedule = self._build(team_id=team_id, draft=draft)
            new_id = self._schedules.create(schedule)
            self._activity.record(
                team_id=team_id, actor_id=actor_id, action="schedule.created",
                entity_type="schedule", entity_id=new_id, title=schedule.title,
                date=schedule.date.isoformat(), rule=schedule.recurrence.rule.value,
            )
            return self.get(team_id=team_id, schedule_id=new_id)

        existing = self.get(team_id=team_id, schedule_id=schedule_id)
        if existing.is_series_member:
            raise ValidationError("Series occurrences are edited with a scope")
        return self._replace_head(existing, draft, actor_id=actor_id)

    def _sync_members(self, head: Schedule, members: Sequence[Schedule]) -> tuple[int, list[int]]:
        # Members whose slot the rule no longer produces keep their data as exceptions.
        orphaned = [
            m.schedule_id
            for m in members
            if not m.is_exception
            and not m.is_cancelled
            and (m.occurrence_date is None or not head.recurrence.occurs_on(head.date, m.occurrence_date))
        ]
        self._schedules.mark_exceptions(orphaned)
        return self._schedules.propagate_from_head(head), orphaned

    def _replace_head(self, existing: Schedule, draft: ScheduleDraft, *, actor_id: Optional[int]) -> Schedule:
        updated = self._build(team_id=existing.team_id, draft=draft, schedule_id=existing.schedule_id)
        members = [m for m in self._schedules.list_members(existing.schedule_id) if not m.is_cancelled]
        if members and not updated.is_series_head:
            raise ValidationError("A series with stored occurrences cannot drop its recurrence; delete the series instead")

        self._schedules.update(updated)
        propagated, orphaned = self._sync_members(updated, members)
        self._activity.record(
            team_id=existing.team_id, actor_id=actor_id, action="schedule.updated",
            entity_type="schedule", entity_id=existing.schedule_id,
            scope=DeleteScope.SERIES.value, propagated=propagated, detached=orphaned,
        )
        return self.get(team_id=existing.team_id, schedule_id=existing.schedule_id)

    def _split(
        self, head: Schedule, slot: date, changes: Mapping[str, Any], *, actor_id: Optional[int]
    ) -> Schedule:
        draft = replace(_draft_of(head), date=slot)
        rec = head.recurrence
        if isinstance(rec, MonthlyRecurrence) and not rec.day_of_month and slot.day != head.date.day:
            # A split on a clamped date (the 30th of a 31st series) keeps the series day.
            draft = replace(draft, recurrence_days=(head.date.day,))
        draft = _with_changes(draft, changes)
        new_head = self._build(team_id=head.team_id, draft=draft)
        if not new_head.is_series_head:
            raise ValidationError("A forward edit must keep a recurrence rule")

        new_id = self._schedules.split_series(
            head_id=head.schedule_id, cap_date=slot - timedelta(days=1), new_head=new_head
        )
        new_head = self.get(team_id=head.team_id, schedule_id=new_id)
        members = [m for m in self._schedules.list_members(new_id) if not m.is_cancelled]
        propagated, orphaned = self._sync_members(new_head, members)
        self._activity.record(
            team_id=head.team_id, actor_id=actor_id, action="schedule.split",
            entity_type="schedule", entity_id=head.schedule_id,
            new_head_id=new_id, from_date=slot.isoformat(), propagated=propagated, detached=orphaned,
        )
        return new_head

    def _require_slot(self, head: Schedule, slot: date) -> None:
        if head.recurrence.occurs_on(head.date, slot):
            return
        if self._schedules.get_member(head_id=head.schedule_id, occurrence_date=slot) is None:
            raise NotFoundError(f"Schedule {head.schedule_id} has no occurrence on {slot}")

    def update_instance(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        schedule_id: int,
        changes: Mapping[str, Any],
        scope: DeleteScope = DeleteScope.SINGLE,
        occurrence_date: Optional[date] = None,
    ) -> Schedule:
        """Edit one occurrence, this and later occurrences, or the whole series.

        - single: the occurrence becomes (or stays) an exception row
        - forward: the series is split at the occurrence; the new head carries the changes
        - series: the head is edited and the changes flow to non-exception members
        """
        self._require_coach(current_role)
        _check_changes(changes)
        target = self.get(team_id=team_id, schedule_id=schedule_id)

        if not target.is_series_head and not target.is_series_member:
            return self._replace_head(target, _with_changes(_draft_of(target), changes), actor_id=actor_id)

        head = target if target.is_series_head else self.get(team_id=team_id, schedule_id=target.parent_schedule_id)
        slot = target.occurrence_date if target.is_series_member else (occurrence_date or _first_occurrence(head))
        if scope == DeleteScope.FORWARD and target.is_series_head:
            self._require_slot(head, slot)

        if scope == DeleteScope.SERIES or (scope == DeleteScope.FORWARD and slot <= _first_occurrence(head)):
            if target.is_series_member and "date" in changes:
                raise ValidationError("The series start date cannot be changed from one occurrence")
            return self._replace_head(head, _with_changes(_draft_of(head), changes), actor_id=actor_id)

        if scope == DeleteScope.FORWARD:
            return self._split(head, slot, changes, actor_id=actor_id)

        if any(k in changes for k in _RECURRENCE_KEYS):
            raise ValidationError("A single occurrence cannot change the recurrence")
        member = target if target.is_series_member else self.materialize_instance(
            team_id=team_id, head_id=head.schedule_id, occurrence_date=slot
        )
        built = self._build(team_id=team_id, draft=replace(_draft_of(member), **changes), schedule_id=member.schedule_id)
        updated = replace(
            built,
            parent_schedule_id=member.parent_schedule_id,
            occurrence_date=member.occurrence_date,
            is_exception=True,
        )
        self._schedules.update(updated)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="schedule.updated",
            entity_type="schedule", entity_id=member.schedule_id,
            scope=DeleteScope.SINGLE.value, series_id=head.schedule_id,
            occurrence_date=member.occurrence_date.isoformat(),
        )
        return self.get(team_id=team_id, schedule_id=member.schedule_id)

    def delete_instance(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        schedule_id: int,
        scope: DeleteScope = DeleteScope.SINGLE,
        occurrence_date: Optional[date] = None,
    ) -> int:
        """Apply the deletion policy. Returns the number of schedule rows removed."""
        self._require_coach(current_role)
        target = self.get(team_id=team_id, schedule_id=schedule_id)

        if not target.is_series_head and not target.is_series_member:
            deleted = 1 if self._schedules.delete_standalone(target.schedule_id) else 0
            self._record_delete(team_id, actor_id, target.schedule_id, DeleteScope.SINGLE, deleted)
            return deleted

        head = target if target.is_series_head else self.get(team_id=team_id, schedule_id=target.parent_schedule_id)
        slot = target.occurrence_date if target.is_series_member else (occurrence_date or _first_occurrence(head))
        if scope == DeleteScope.FORWARD and target.is_series_head:
            self._require_slot(head, slot)

        if scope == DeleteScope.SINGLE:
            if target.is_series_head:
                existing = self._schedules.get_member(head_id=head.schedule_id, occurrence_date=slot)
                if existing is not None and existing.is_cancelled:
                    raise NotFoundError(f"Occurrence {slot} of schedule {head.schedule_id} was already deleted")
                if existing is None and not head.recurrence.occurs_on(head.date, slot):
                    raise NotFoundError(f"Schedule {head.schedule_id} has no occurrence on {slot}")
            self._schedules.cancel_occurrence(head=head, occurrence_date=slot)
            deleted = 1
        elif scope == DeleteScope.FORWARD and slot > _first_occurrence(head):
            deleted = self._schedules.delete_forward(
                head_id=head.schedule_id, from_date=slot, new_end_date=slot - timedelta(days=1)
            )
        else:
            deleted = self._schedules.delete_series(head.schedule_id)

        self._record_delete(team_id, actor_id, head.schedule_id, scope, deleted, occurrence_date=slot.isoformat())
        return deleted

    def _record_delete(
        self, team_id: int, actor_id: Optional[int], schedule_id: int, scope: DeleteScope, deleted: int, **extra: Any
    ) -> None:
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="schedule.deleted",
            entity_type="schedule", entity_id=schedule_id, scope=scope.value, rows=deleted, **extra,
        )
