from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Category:
    """Team-scoped tag (age group) used for visibility and billing."""

    category_id: int
    team_id: int
    name: str
    display_order: int
    is_school_only: bool = False
    description: Optional[str] = None
