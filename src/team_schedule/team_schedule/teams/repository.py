from __future__ import annotations

from typing import Optional, Protocol

from .model import Team


class TeamRepository(Protocol):
    def get_by_id(self, team_id: int) -> Optional[Team]:
        raise NotImplementedError

    def update_fees(self, team: Team) -> bool:
        """Persist every fee/month field of ``team``."""

        raise NotImplementedError
