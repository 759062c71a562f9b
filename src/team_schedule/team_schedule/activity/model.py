from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class ActivityEvent:
    """Audit trail entry written by mutating operations."""

    team_id: int
    actor_id: Optional[int]
    action: str
    entity_type: str
    entity_id: Optional[int]
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    event_id: Optional[int] = None
