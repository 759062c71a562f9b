from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Category


class CategoryRepository(Protocol):
    def list_for_team(self, team_id: int) -> Sequence[Category]:
        """Categories ordered by display_order."""

        raise NotImplementedError

    def get_by_id(self, category_id: int) -> Optional[Category]:
        raise NotImplementedError

    def create(self, *, team_id: int, name: str, description: Optional[str], is_school_only: bool) -> int:
        """Append at the end of the team ordering. Returns category_id."""

        raise NotImplementedError

    def update(self, *, category_id: int, name: str, description: Optional[str], is_school_only: bool) -> bool:
        raise NotImplementedError

    def delete(self, *, team_id: int, category_id: int) -> bool:
        """Delete and compact display_order of the remaining categories."""

        raise NotImplementedError

    def apply_order(self, *, team_id: int, ordered_ids: Sequence[int]) -> None:
        """Rewrite display_order for the whole team in one transaction."""

        raise NotImplementedError
