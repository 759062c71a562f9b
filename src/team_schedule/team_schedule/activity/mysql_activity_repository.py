from __future__ import annotations

import json
from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import ActivityEvent
from .repository import ActivityRepository


class MySQLActivityRepository(ActivityRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, event: ActivityEvent) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO activity_logs(team_id, actor_id, action, entity_type, entity_id, payload)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(event.team_id),
                    event.actor_id,
                    event.action,
                    event.entity_type,
                    event.entity_id,
                    json.dumps(event.payload, default=str, ensure_ascii=False),
                ),
            )
            return int(cur.lastrowid)

    def list_recent(self, *, team_id: int, limit: int = 50) -> Sequence[ActivityEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT event_id, team_id, actor_id, action, entity_type, entity_id, payload, created_at
                FROM activity_logs
                WHERE team_id=%s
                ORDER BY created_at DESC, event_id DESC
                LIMIT %s
                """,
                (int(team_id), int(limit)),
            )
            return [
                ActivityEvent(
                    event_id=int(r["event_id"]),
                    team_id=int(r["team_id"]),
                    actor_id=r.get("actor_id"),
                    action=r["action"],
                    entity_type=r["entity_type"],
                    entity_id=r.get("entity_id"),
                    payload=json.loads(r["payload"]) if r.get("payload") else {},
                    created_at=r["created_at"],
                )
                for r in fetchall(cur)
            ]
