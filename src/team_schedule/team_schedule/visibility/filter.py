"""Category visibility: which schedule instances and documents a student sees."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from ..categories.model import Category
from ..core.enums import PlayerType
from ..students.model import Student

# Rank of items without categories: they sort ahead of every categorized item.
UNCATEGORIZED_RANK = -1


@dataclass(frozen=True)
class Visibility:
    visible: bool
    editable: bool


HIDDEN = Visibility(visible=False, editable=False)


class CategoryVisibilityFilter:
    """Evaluates visibility against one student's subscriptions.

    School-only categories only count for students whose player type is ``school``.
    """

    def __init__(self, categories: Sequence[Category], student: Student):
        self._by_id = {c.category_id: c for c in categories}
        self._subscribed = frozenset(
            cid
            for cid in student.category_ids
            if cid in self._by_id
            and (student.player_type == PlayerType.SCHOOL or not self._by_id[cid].is_school_only)
        )

    @property
    def subscribed(self) -> frozenset[int]:
        return self._subscribed

    def is_visible(self, category_ids: Iterable[int]) -> bool:
        ids = set(category_ids)
        return not ids or bool(ids & self._subscribed)

    def evaluate(self, category_ids: Iterable[int], *, student_can_register: bool = True) -> Visibility:
        if not self.is_visible(category_ids):
            return HIDDEN
        return Visibility(visible=True, editable=bool(student_can_register))

    def rank(self, category_ids: Iterable[int]) -> int:
        """Lowest display_order among the matching categories."""
        matching = [self._by_id[c].display_order for c in category_ids if c in self._subscribed]
        return min(matching) if matching else UNCATEGORIZED_RANK
