from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from flask import Flask, current_app, request

from ..common.datetime_utils import format_time, parse_iso_date, parse_optional_date, parse_optional_time
from ..common.http import id_list, json_body, json_endpoint, ok, parse_bool, query_int, request_context
from ..core.constants import VENUE_UNDECIDED
from ..core.enums import DeleteScope
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Schedule, ScheduleDraft, ScheduleInstance, venue_label

# JSON key -> (draft field, parser)
_FIELDS = {
    "title": ("title", lambda v: v or ""),
    "date": ("date", parse_iso_date),
    "startTime": ("start_time", parse_optional_time),
    "endTime": ("end_time", parse_optional_time),
    "gatherTime": ("gather_time", parse_optional_time),
    "venue": ("venue", lambda v: v),
    "notes": ("notes", lambda v: v),
    "categoryIds": ("category_ids", id_list),
    "studentCanRegister": ("student_can_register", lambda v: parse_bool(v, "studentCanRegister")),
    "recurrenceRule": ("recurrence_rule", lambda v: v),
    "recurrenceInterval": ("recurrence_interval", lambda v: v),
    "recurrenceDays": ("recurrence_days", id_list),
    "recurrenceEndDate": ("recurrence_end_date", parse_optional_date),
}


def parse_scope(value: Any) -> DeleteScope:
    try:
        return DeleteScope(str(value or DeleteScope.SINGLE.value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown scope: {value!r}")


def changes_from_body(body: dict[str, Any]) -> dict[str, Any]:
    changes = {field: parse(body[key]) for key, (field, parse) in _FIELDS.items() if key in body}
    # Legacy clients send a single categoryId.
    if "categoryIds" not in body and "categoryId" in body:
        changes["category_ids"] = id_list(body["categoryId"])
    return changes


def draft_from_body(body: dict[str, Any]) -> ScheduleDraft:
    changes = changes_from_body(body)
    if "date" not in changes:
        raise ValidationError("date is required")
    changes.setdefault("title", "")
    return ScheduleDraft(**changes)


def _venue_label(venue):
    return venue_label(venue, current_app.config.get("VENUE_UNDECIDED_LABEL") or VENUE_UNDECIDED)


def schedule_to_json(s: Schedule) -> dict[str, Any]:
    rec = s.recurrence
    return {
        "id": s.schedule_id,
        "teamId": s.team_id,
        "title": s.title,
        "date": s.date.isoformat(),
        "startTime": format_time(s.start_time),
        "endTime": format_time(s.end_time),
        "gatherTime": format_time(s.gather_time),
        "venue": s.venue,
        "venueLabel": _venue_label(s.venue),
        "notes": s.notes,
        "categoryIds": list(s.category_ids),
        "studentCanRegister": s.student_can_register,
        "recurrenceRule": rec.rule.value,
        "recurrenceInterval": rec.interval,
        "recurrenceDays": list(rec.days),
        "recurrenceEndDate": rec.end_date.isoformat() if rec.end_date else None,
        "parentScheduleId": s.parent_schedule_id,
        "occurrenceDate": s.occurrence_date.isoformat() if s.occurrence_date else None,
        "isException": s.is_exception,
    }


def instance_to_json(i: ScheduleInstance) -> dict[str, Any]:
    return {
        "id": i.schedule_id,
        "seriesId": i.series_id,
        "occurrenceDate": i.occurrence_date.isoformat(),
        "date": i.date.isoformat(),
        "title": i.title,
        "startTime": format_time(i.start_time),
        "endTime": format_time(i.end_time),
        "gatherTime": format_time(i.gather_time),
        "venue": i.venue,
        "venueLabel": _venue_label(i.venue),
        "notes": i.notes,
        "categoryIds": list(i.category_ids),
        "studentCanRegister": i.student_can_register,
        "isVirtual": i.is_virtual,
        "isException": i.is_exception,
    }


def date_window() -> tuple[date, date]:
    start = parse_optional_date(request.args.get("from")) or date.today()
    end = parse_optional_date(request.args.get("to")) or (start + timedelta(days=7))
    return start, end


def register(app: Flask, container: Container) -> None:
    @app.route("/schedules", methods=["POST"], endpoint="create_schedule")
    @json_endpoint
    def create_schedule():
        body = json_body()
        ctx = request_context(body)
        schedule = container.schedule_service.upsert_head(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            draft=draft_from_body(body),
        )
        return ok(schedule_to_json(schedule), 201)

    @app.route("/schedules", methods=["GET"], endpoint="list_schedules")
    @json_endpoint
    def list_schedules():
        ctx = request_context()
        start, end = date_window()
        instances = container.schedule_service.list_effective_instances(
            team_id=ctx.team_id, start=start, end=end, category_id=query_int("categoryId")
        )
        return ok([instance_to_json(i) for i in instances])

    @app.route("/schedules/<int:schedule_id>", methods=["PUT"], endpoint="update_schedule")
    @json_endpoint
    def update_schedule(schedule_id: int):
        body = json_body()
        ctx = request_context(body)
        schedule = container.schedule_service.update_instance(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            schedule_id=schedule_id,
            changes=changes_from_body(body),
            scope=parse_scope(request.args.get("scope")),
            occurrence_date=parse_optional_date(request.args.get("date")),
        )
        return ok(schedule_to_json(schedule))

    @app.route("/schedules/<int:schedule_id>", methods=["DELETE"], endpoint="delete_schedule")
    @json_endpoint
    def delete_schedule(schedule_id: int):
        ctx = request_context()
        container.schedule_service.delete_instance(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            schedule_id=schedule_id,
            scope=parse_scope(request.args.get("scope")),
            occurrence_date=parse_optional_date(request.args.get("date")),
        )
        return "", 204
