from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import PlayerType, SiblingLinkStatus
from .model import SiblingLink, Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def list_for_team(self, team_id: int, *, player_types: Optional[Sequence[PlayerType]] = None) -> Sequence[Student]:
        raise NotImplementedError

    def replace_categories(self, *, student_id: int, category_ids: Sequence[int]) -> None:
        """Swap the whole subscription set in one transaction."""

        raise NotImplementedError

    def set_player_type(self, *, student_id: int, player_type: PlayerType) -> bool:
        raise NotImplementedError

    def create_sibling_link(self, *, team_id: int, student_id: int, sibling_student_id: int) -> int:
        raise NotImplementedError

    def get_sibling_link(self, link_id: int) -> Optional[SiblingLink]:
        raise NotImplementedError

    def set_sibling_link_status(self, *, link_id: int, status: SiblingLinkStatus) -> bool:
        raise NotImplementedError

    def list_sibling_links(self, team_id: int, *, status: Optional[SiblingLinkStatus] = None) -> Sequence[SiblingLink]:
        raise NotImplementedError
