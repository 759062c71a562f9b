from __future__ import annotations

from typing import Any

from flask import Flask

from ..activity.model import ActivityEvent
from ..common.http import json_body, json_endpoint, ok, query_int, request_context
from ..core.exceptions import NotFoundError
from ..container import Container
from .model import Team

# JSON key -> team field
_FEE_KEYS = {
    "monthlyFeeMember": "monthly_fee_member",
    "monthlyFeeSchool": "monthly_fee_school",
    "siblingDiscount": "sibling_discount",
    "annualFee": "annual_fee",
    "entranceFee": "entrance_fee",
    "insuranceFee": "insurance_fee",
    "annualFeeMonth": "annual_fee_month",
    "insuranceFeeMonth": "insurance_fee_month",
}


def fees_to_json(t: Team) -> dict[str, Any]:
    out: dict[str, Any] = {"teamId": t.team_id, "name": t.name}
    out.update({key: getattr(t, field) for key, field in _FEE_KEYS.items()})
    return out


def event_to_json(e: ActivityEvent) -> dict[str, Any]:
    return {
        "id": e.event_id,
        "actorId": e.actor_id,
        "action": e.action,
        "entityType": e.entity_type,
        "entityId": e.entity_id,
        "payload": e.payload,
        "createdAt": e.created_at.isoformat() if e.created_at else None,
    }


def register(app: Flask, container: Container) -> None:
    def _own_team(ctx_team_id: int, team_id: int) -> None:
        if int(ctx_team_id) != int(team_id):
            raise NotFoundError(f"Team {team_id} not found")

    @app.route("/teams/<int:team_id>/fees", methods=["GET"], endpoint="get_team_fees")
    @json_endpoint
    def get_team_fees(team_id: int):
        ctx = request_context({"teamId": team_id})
        _own_team(ctx.team_id, team_id)
        return ok(fees_to_json(container.team_service.get(team_id)))

    @app.route("/teams/<int:team_id>/fees", methods=["PUT"], endpoint="update_team_fees")
    @json_endpoint
    def update_team_fees(team_id: int):
        body = json_body()
        ctx = request_context({**body, "teamId": team_id})
        _own_team(ctx.team_id, team_id)
        changes = {field: body[key] for key, field in _FEE_KEYS.items() if key in body}
        team = container.team_service.update_fees(
            team_id=team_id, actor_id=ctx.actor_id, current_role=ctx.role, changes=changes
        )
        return ok(fees_to_json(team))

    @app.route("/teams/<int:team_id>/activity", methods=["GET"], endpoint="team_activity")
    @json_endpoint
    def team_activity(team_id: int):
        ctx = request_context({"teamId": team_id})
        _own_team(ctx.team_id, team_id)
        events = container.activity_log.recent(team_id=team_id, limit=query_int("limit") or 50)
        return ok([event_to_json(e) for e in events])
