from __future__ import annotations

from collections import defaultdict
from typing import Optional, Sequence

from ..core.enums import PlayerType, SiblingLinkStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, placeholders
from .model import SiblingLink, Student
from .repository import StudentRepository

_COLUMNS = "student_id, team_id, name, player_type, birth_date, jersey_number"


def _row_to_student(r: dict, category_ids: Sequence[int]) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        team_id=int(r["team_id"]),
        name=r["name"],
        player_type=PlayerType(r["player_type"]),
        category_ids=tuple(category_ids),
        birth_date=r.get("birth_date"),
        jersey_number=r.get("jersey_number"),
    )


def _row_to_link(r: dict) -> SiblingLink:
    return SiblingLink(
        link_id=int(r["link_id"]),
        team_id=int(r["team_id"]),
        student_id=int(r["student_id"]),
        sibling_student_id=int(r["sibling_student_id"]),
        status=SiblingLinkStatus(r["status"]),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            if not r:
                return None
            cur.execute(
                """
                SELECT sc.category_id
                FROM student_categories sc
                JOIN categories c ON c.category_id = sc.category_id
                WHERE sc.student_id=%s
                ORDER BY c.display_order ASC
                """,
                (int(student_id),),
            )
            return _row_to_student(r, [int(x["category_id"]) for x in fetchall(cur)])

    def list_for_team(self, team_id: int, *, player_types: Optional[Sequence[PlayerType]] = None) -> Sequence[Student]:
        clauses = ["s.team_id=%s"]
        params: list[object] = [int(team_id)]
        if player_types:
            clauses.append(f"s.player_type IN ({placeholders(player_types)})")
            params.extend(pt.value for pt in player_types)
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM students s WHERE {where} ORDER BY s.student_id ASC",
                tuple(params),
            )
            rows = fetchall(cur)
            cur.execute(
                """
                SELECT sc.student_id, sc.category_id
                FROM student_categories sc
                JOIN students s ON s.student_id = sc.student_id
                JOIN categories c ON c.category_id = sc.category_id
                WHERE s.team_id=%s
                ORDER BY c.display_order ASC
                """,
                (int(team_id),),
            )
            cats: dict[int, list[int]] = defaultdict(list)
            for x in fetchall(cur):
                cats[int(x["student_id"])].append(int(x["category_id"]))
            return [_row_to_student(r, cats.get(int(r["student_id"]), [])) for r in rows]

    def replace_categories(self, *, student_id: int, category_ids: Sequence[int]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM student_categories WHERE student_id=%s", (int(student_id),))
            if category_ids:
                cur.executemany(
                    "INSERT INTO student_categories(student_id, category_id) VALUES(%s,%s)",
                    [(int(student_id), int(cid)) for cid in category_ids],
                )

    def set_player_type(self, *, student_id: int, player_type: PlayerType) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE students SET player_type=%s WHERE student_id=%s",
                (player_type.value, int(student_id)),
            )
            return cur.rowcount >= 0

    def create_sibling_link(self, *, team_id: int, student_id: int, sibling_student_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sibling_links(team_id, student_id, sibling_student_id, status)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE link_id=LAST_INSERT_ID(link_id)
                """,
                (int(team_id), int(student_id), int(sibling_student_id), SiblingLinkStatus.PENDING.value),
            )
            return int(cur.lastrowid)

    def get_sibling_link(self, link_id: int) -> Optional[SiblingLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT link_id, team_id, student_id, sibling_student_id, status FROM sibling_links WHERE link_id=%s",
                (int(link_id),),
            )
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def set_sibling_link_status(self, *, link_id: int, status: SiblingLinkStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE sibling_links SET status=%s WHERE link_id=%s", (status.value, int(link_id)))
            return cur.rowcount >= 0

    def list_sibling_links(self, team_id: int, *, status: Optional[SiblingLinkStatus] = None) -> Sequence[SiblingLink]:
        sql = "SELECT link_id, team_id, student_id, sibling_student_id, status FROM sibling_links WHERE team_id=%s"
        params: list[object] = [int(team_id)]
        if status is not None:
            sql += " AND status=%s"
            params.append(status.value)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql + " ORDER BY link_id ASC", tuple(params))
            return [_row_to_link(r) for r in fetchall(cur)]
