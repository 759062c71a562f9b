from __future__ import annotations

from typing import Protocol, Sequence

from .model import ActivityEvent


class ActivityRepository(Protocol):
    def append(self, event: ActivityEvent) -> int:
        raise NotImplementedError

    def list_recent(self, *, team_id: int, limit: int = 50) -> Sequence[ActivityEvent]:
        raise NotImplementedError
