from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import SharedDocument


class DocumentRepository(Protocol):
    def list_for_team(self, team_id: int) -> Sequence[SharedDocument]:
        """Newest first."""

        raise NotImplementedError

    def get_by_id(self, document_id: int) -> Optional[SharedDocument]:
        raise NotImplementedError

    def create(self, *, team_id: int, title: str, file_url: str, category_ids: Sequence[int]) -> int:
        raise NotImplementedError

    def delete(self, document_id: int) -> bool:
        raise NotImplementedError
