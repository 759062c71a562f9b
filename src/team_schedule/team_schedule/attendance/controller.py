from __future__ import annotations

from typing import Any

from flask import Flask, request

from ..common.datetime_utils import parse_optional_date
from ..common.http import json_body, json_endpoint, ok, request_context
from ..core.exceptions import ValidationError
from ..container import Container
from .model import Attendance, StatusCounts


def attendance_to_json(a: Attendance) -> dict[str, Any]:
    return {
        "id": a.attendance_id,
        "scheduleId": a.schedule_id,
        "studentId": a.student_id,
        "status": a.status.value,
        "comment": a.comment,
        "updatedAt": a.updated_at.isoformat() if a.updated_at else None,
    }


def counts_to_json(c: StatusCounts) -> dict[str, Any]:
    return {
        "scheduleId": c.schedule_id,
        "confirmed": c.confirmed,
        "tentative": c.tentative,
        "declined": c.declined,
        "total": c.total,
    }


def _required_int(body: dict[str, Any], key: str) -> int:
    try:
        return int(body[key])
    except KeyError:
        raise ValidationError(f"{key} is required")
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")


def register(app: Flask, container: Container) -> None:
    @app.route("/attendances", methods=["POST"], endpoint="set_attendance")
    @json_endpoint
    def set_attendance():
        body = json_body()
        ctx = request_context(body)
        att = container.attendance_ledger.set_status(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            schedule_id=_required_int(body, "scheduleId"),
            student_id=_required_int(body, "studentId"),
            status=body.get("status"),
            comment=body.get("comment"),
            occurrence_date=parse_optional_date(body.get("date")),
        )
        return ok(attendance_to_json(att))

    @app.route("/attendances/<int:attendance_id>", methods=["GET"], endpoint="get_attendance")
    @json_endpoint
    def get_attendance(attendance_id: int):
        ctx = request_context()
        att = container.attendance_ledger.get(team_id=ctx.team_id, attendance_id=attendance_id)
        return ok(attendance_to_json(att))

    @app.route("/attendances/<int:attendance_id>/transfer", methods=["POST"], endpoint="transfer_attendance")
    @json_endpoint
    def transfer_attendance(attendance_id: int):
        body = json_body()
        ctx = request_context(body)
        att = container.attendance_ledger.transfer(
            team_id=ctx.team_id,
            actor_id=ctx.actor_id,
            current_role=ctx.role,
            attendance_id=attendance_id,
            target_schedule_id=_required_int(body, "targetScheduleId"),
            expected_date=parse_optional_date(body.get("expectedDate")),
        )
        return ok(attendance_to_json(att))

    @app.route("/schedules/<int:schedule_id>/attendance-counts", methods=["GET"], endpoint="attendance_counts")
    @json_endpoint
    def attendance_counts(schedule_id: int):
        ctx = request_context()
        counts = container.attendance_ledger.counts_by_status(
            team_id=ctx.team_id,
            schedule_id=schedule_id,
            occurrence_date=parse_optional_date(request.args.get("date")),
        )
        return ok(counts_to_json(counts))

    @app.route("/schedules/<int:schedule_id>/attendances", methods=["GET"], endpoint="list_schedule_attendances")
    @json_endpoint
    def list_schedule_attendances(schedule_id: int):
        ctx = request_context()
        rows = container.attendance_ledger.list_for_schedule(team_id=ctx.team_id, schedule_id=schedule_id)
        return ok([attendance_to_json(a) for a in rows])
