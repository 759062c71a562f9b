from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..core.enums import PlayerType, SiblingLinkStatus


@dataclass(frozen=True)
class Student:
    """Team player. ``player_type`` drives the tuition category."""

    student_id: int
    team_id: int
    name: str
    player_type: PlayerType = PlayerType.UNSET
    category_ids: tuple[int, ...] = ()
    birth_date: Optional[date] = None
    jersey_number: Optional[str] = None


@dataclass(frozen=True)
class SiblingLink:
    link_id: int
    team_id: int
    student_id: int
    sibling_student_id: int
    status: SiblingLinkStatus = SiblingLinkStatus.PENDING
