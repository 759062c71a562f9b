from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Category
from .repository import CategoryRepository

_COLUMNS = "category_id, team_id, name, description, is_school_only, display_order"


def _row_to_category(r: dict) -> Category:
    return Category(
        category_id=int(r["category_id"]),
        team_id=int(r["team_id"]),
        name=r["name"],
        description=r.get("description"),
        is_school_only=bool(r["is_school_only"]),
        display_order=int(r["display_order"]),
    )


class MySQLCategoryRepository(CategoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_for_team(self, team_id: int) -> Sequence[Category]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM categories WHERE team_id=%s ORDER BY display_order ASC, category_id ASC",
                (int(team_id),),
            )
            return [_row_to_category(r) for r in fetchall(cur)]

    def get_by_id(self, category_id: int) -> Optional[Category]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM categories WHERE category_id=%s", (int(category_id),))
            r = fetchone(cur)
            return _row_to_category(r) if r else None

    def create(self, *, team_id: int, name: str, description: Optional[str], is_school_only: bool) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # Lock the team's rows so two concurrent creates cannot take the same position.
            cur.execute("SELECT category_id FROM categories WHERE team_id=%s FOR UPDATE", (int(team_id),))
            position = len(fetchall(cur))
            cur.execute(
                """
                INSERT INTO categories(team_id, name, description, is_school_only, display_order)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(team_id), name, description, int(bool(is_school_only)), position),
            )
            return int(cur.lastrowid)

    def update(self, *, category_id: int, name: str, description: Optional[str], is_school_only: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE categories SET name=%s, description=%s, is_school_only=%s WHERE category_id=%s",
                (name, description, int(bool(is_school_only)), int(category_id)),
            )
            return cur.rowcount >= 0

    def delete(self, *, team_id: int, category_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM categories WHERE category_id=%s AND team_id=%s", (int(category_id), int(team_id)))
            deleted = cur.rowcount > 0
            cur.execute(
                "SELECT category_id FROM categories WHERE team_id=%s ORDER BY display_order ASC, category_id ASC FOR UPDATE",
                (int(team_id),),
            )
            remaining = [int(r["category_id"]) for r in fetchall(cur)]
            cur.executemany(
                "UPDATE categories SET display_order=%s WHERE category_id=%s",
                [(position, cid) for position, cid in enumerate(remaining)],
            )
            return deleted

    def apply_order(self, *, team_id: int, ordered_ids: Sequence[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                "UPDATE categories SET display_order=%s WHERE category_id=%s AND team_id=%s",
                [(position, int(cid), int(team_id)) for position, cid in enumerate(ordered_ids)],
            )
