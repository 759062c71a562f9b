from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from ..activity.service import ActivityLog
from ..common.validators import require_month, require_non_negative_int
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import FEE_FIELDS, MONTH_FIELDS, Team
from .repository import TeamRepository


class TeamService:
    def __init__(self, teams: TeamRepository, activity: ActivityLog):
        self._teams = teams
        self._activity = activity

    def get(self, team_id: int) -> Team:
        team = self._teams.get_by_id(int(team_id))
        if not team:
            raise NotFoundError(f"Team {team_id} not found")
        return team

    def update_fees(self, *, team_id: int, actor_id: int | None, current_role: Role, changes: Mapping[str, Any]) -> Team:
        if current_role != Role.COACH:
            raise AuthorizationError("Only coaches can change fee settings")

        team = self.get(team_id)
        unknown = set(changes) - set(FEE_FIELDS) - set(MONTH_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fee fields: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        for name in FEE_FIELDS:
            if name in changes:
                raw = changes[name]
                values[name] = None if raw is None else require_non_negative_int(raw, name)
        for name in MONTH_FIELDS:
            if name in changes:
                values[name] = require_month(changes[name], name)

        updated = replace(team, **values)
        self._teams.update_fees(updated)
        self._activity.record(
            team_id=team.team_id, actor_id=actor_id, action="team.fees_updated",
            entity_type="team", entity_id=team.team_id, **values,
        )
        return updated
