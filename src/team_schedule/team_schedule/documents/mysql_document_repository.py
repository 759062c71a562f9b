from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, join_int_list, split_int_list
from .model import SharedDocument
from .repository import DocumentRepository

_SELECT = "SELECT document_id, team_id, title, file_url, category_ids, created_at FROM shared_documents"


def _row_to_document(r: dict) -> SharedDocument:
    return SharedDocument(
        document_id=int(r["document_id"]),
        team_id=int(r["team_id"]),
        title=r["title"],
        file_url=r["file_url"],
        category_ids=split_int_list(r.get("category_ids")),
        created_at=r.get("created_at"),
    )


class MySQLDocumentRepository(DocumentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_team(self, team_id: int) -> Sequence[SharedDocument]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE team_id=%s ORDER BY created_at DESC, document_id DESC", (int(team_id),))
            return [_row_to_document(r) for r in fetchall(cur)]

    def get_by_id(self, document_id: int) -> Optional[SharedDocument]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE document_id=%s", (int(document_id),))
            r = fetchone(cur)
            return _row_to_document(r) if r else None

    def create(self, *, team_id: int, title: str, file_url: str, category_ids: Sequence[int]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO shared_documents(team_id, title, file_url, category_ids) VALUES(%s,%s,%s,%s)",
                (int(team_id), title, file_url, join_int_list(category_ids)),
            )
            return int(cur.lastrowid)

    def delete(self, document_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM shared_documents WHERE document_id=%s", (int(document_id),))
            return cur.rowcount > 0
