from __future__ import annotations

from typing import Any, Optional, Sequence

from ..common.app_logger import get_logger
from .model import ActivityEvent
from .repository import ActivityRepository

logger = get_logger("activity")


class ActivityLog:
    """Records mutations both in the activity_logs table and the app log."""

    def __init__(self, events: ActivityRepository):
        self._events = events

    def record(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        **payload: Any,
    ) -> ActivityEvent:
        event = ActivityEvent(
            team_id=int(team_id),
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=dict(payload),
        )
        self._events.append(event)
        logger.info("team=%s actor=%s %s %s#%s %s", team_id, actor_id, action, entity_type, entity_id, payload)
        return event

    def recent(self, *, team_id: int, limit: int = 50) -> Sequence[ActivityEvent]:
        return list(self._events.list_recent(team_id=int(team_id), limit=int(limit)))
