from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SharedDocument:
    """Document metadata; ``file_url`` points into external object storage."""

    document_id: int
    team_id: int
    title: str
    file_url: str
    category_ids: tuple[int, ...] = ()
    created_at: Optional[datetime] = None
