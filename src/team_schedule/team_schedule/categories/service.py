from __future__ import annotations

from typing import Optional, Sequence

from ..activity.service import ActivityLog
from ..common.app_logger import get_logger
from ..common.validators import require_non_empty, require_permutation
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError
from .model import Category
from .repository import CategoryRepository

logger = get_logger("categories")


class CategoryService:
    """Category registry: ordered, team-scoped set of tags."""

    def __init__(self, categories: CategoryRepository, activity: ActivityLog):
        self._categories = categories
        self._activity = activity

    @staticmethod
    def _require_coach(role: Role) -> None:
        if role != Role.COACH:
            raise AuthorizationError("Only coaches can manage categories")

    def list(self, team_id: int) -> Sequence[Category]:
        return list(self._categories.list_for_team(int(team_id)))

    def get(self, *, team_id: int, category_id: int) -> Category:
        cat = self._categories.get_by_id(int(category_id))
        if not cat or cat.team_id != int(team_id):
            raise NotFoundError(f"Category {category_id} not found")
        return cat

    def create(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        name: str,
        description: Optional[str] = None,
        is_school_only: bool = False,
    ) -> Category:
        self._require_coach(current_role)
        name = require_non_empty(name, "name")
        description = (description or "").strip() or None
        category_id = self._categories.create(
            team_id=int(team_id), name=name, description=description, is_school_only=bool(is_school_only)
        )
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="category.created",
            entity_type="category", entity_id=category_id, name=name,
        )
        return self.get(team_id=team_id, category_id=category_id)

    def update(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        category_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_school_only: Optional[bool] = None,
    ) -> Category:
        self._require_coach(current_role)
        cat = self.get(team_id=team_id, category_id=category_id)
        new_name = require_non_empty(name, "name") if name is not None else cat.name
        new_description = ((description or "").strip() or None) if description is not None else cat.description
        new_school_only = bool(is_school_only) if is_school_only is not None else cat.is_school_only
        self._categories.update(
            category_id=cat.category_id, name=new_name, description=new_description, is_school_only=new_school_only
        )
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="category.updated",
            entity_type="category", entity_id=cat.category_id, name=new_name,
        )
        return self.get(team_id=team_id, category_id=category_id)

    def delete(self, *, team_id: int, actor_id: Optional[int], current_role: Role, category_id: int) -> None:
        self._require_coach(current_role)
        cat = self.get(team_id=team_id, category_id=category_id)
        self._categories.delete(team_id=cat.team_id, category_id=cat.category_id)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="category.deleted",
            entity_type="category", entity_id=cat.category_id,
        )

    def reorder(
        self, *, team_id: int, actor_id: Optional[int], current_role: Role, ordered_ids: Sequence[int]
    ) -> Sequence[Category]:
        """Apply a full new ordering; the input must list every category exactly once."""
        self._require_coach(current_role)
        existing = [c.category_id for c in self._categories.list_for_team(int(team_id))]
        ordered = require_permutation(ordered_ids, existing, "categoryIds")
        self._categories.apply_order(team_id=int(team_id), ordered_ids=ordered)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="category.reordered",
            entity_type="team", entity_id=int(team_id), order=ordered,
        )
        return self.list(team_id)
