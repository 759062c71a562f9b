from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    join_int_list,
    normalize_mysql_time,
    placeholders,
    split_int_list,
)
from .model import Schedule
from .recurrence import build_recurrence
from .repository import ScheduleRepository

_COLUMNS = """
    schedule_id, team_id, title, date, start_time, end_time, gather_time, venue, notes,
    student_can_register, recurrence_rule, recurrence_interval, recurrence_days, recurrence_end_date,
    parent_schedule_id, occurrence_date, is_exception, is_cancelled
"""

_INSERT = """
    INSERT INTO schedules(
        team_id, title, date, start_time, end_time, gather_time, venue, notes, student_can_register,
        recurrence_rule, recurrence_interval, recurrence_days, recurrence_end_date,
        parent_schedule_id, occurrence_date, is_exception, is_cancelled
    )
    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
"""


def _row_to_schedule(r: dict, category_ids: Sequence[int]) -> Schedule:
    return Schedule(
        schedule_id=int(r["schedule_id"]),
        team_id=int(r["team_id"]),
        title=r["title"],
        date=r["date"],
        start_time=normalize_mysql_time(r.get("start_time")),
        end_time=normalize_mysql_time(r.get("end_time")),
        gather_time=normalize_mysql_time(r.get("gather_time")),
        venue=r.get("venue"),
        notes=r.get("notes"),
        category_ids=tuple(category_ids),
        student_can_register=bool(r["student_can_register"]),
        recurrence=build_recurrence(
            rule=r["recurrence_rule"],
            start=r["date"],
            interval=r.get("recurrence_interval"),
            days=split_int_list(r.get("recurrence_days")),
            end_date=r.get("recurrence_end_date"),
        ),
        parent_schedule_id=int(r["parent_schedule_id"]) if r.get("parent_schedule_id") is not None else None,
        occurrence_date=r.get("occurrence_date"),
        is_exception=bool(r["is_exception"]),
        is_cancelled=bool(r["is_cancelled"]),
    )


def _values(s: Schedule) -> tuple:
    rec = s.recurrence
    return (
        int(s.team_id),
        s.title,
        s.date,
        s.start_time,
        s.end_time,
        s.gather_time,
        s.venue,
        s.notes,
        int(bool(s.student_can_register)),
        rec.rule.value,
        int(rec.interval),
        join_int_list(rec.days),
        rec.end_date,
        s.parent_schedule_id,
        s.occurrence_date,
        int(bool(s.is_exception)),
        int(bool(s.is_cancelled)),
    )


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- helpers (run inside the caller's transaction) --------
    @staticmethod
    def _load_categories(cur, schedule_ids: Sequence[int]) -> dict[int, list[int]]:
        out: dict[int, list[int]] = defaultdict(list)
        if not schedule_ids:
            return out
        cur.execute(
            f"""
            SELECT schedule_id, category_id
            FROM schedule_categories
            WHERE schedule_id IN ({placeholders(schedule_ids)})
            ORDER BY schedule_id ASC, position ASC
            """,
            tuple(int(x) for x in schedule_ids),
        )
        for r in fetchall(cur):
            out[int(r["schedule_id"])].append(int(r["category_id"]))
        return out

    @staticmethod
    def _write_categories(cur, schedule_id: int, category_ids: Sequence[int]) -> None:
        cur.execute("DELETE FROM schedule_categories WHERE schedule_id=%s", (int(schedule_id),))
        if category_ids:
            cur.executemany(
                "INSERT INTO schedule_categories(schedule_id, category_id, position) VALUES(%s,%s,%s)",
                [(int(schedule_id), int(cid), pos) for pos, cid in enumerate(category_ids)],
            )

    def _select(self, cur, where: str, params: tuple) -> list[Schedule]:
        cur.execute(f"SELECT {_COLUMNS} FROM schedules WHERE {where} ORDER BY date ASC, schedule_id ASC", params)
        rows = fetchall(cur)
        cats = self._load_categories(cur, [int(r["schedule_id"]) for r in rows])
        return [_row_to_schedule(r, cats.get(int(r["schedule_id"]), [])) for r in rows]

    @staticmethod
    def _delete_rows(cur, schedule_ids: Sequence[int]) -> int:
        if not schedule_ids:
            return 0
        ids = tuple(int(x) for x in schedule_ids)
        marks = placeholders(ids)
        cur.execute(f"DELETE FROM attendances WHERE schedule_id IN ({marks})", ids)
        cur.execute(f"DELETE FROM schedule_categories WHERE schedule_id IN ({marks})", ids)
        cur.execute(f"DELETE FROM schedules WHERE schedule_id IN ({marks})", ids)
        return cur.rowcount

    # -------- reads --------
    def get_by_id(self, schedule_id: int) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            rows = self._select(cur, "schedule_id=%s", (int(schedule_id),))
            return rows[0] if rows else None

    def list_range(self, *, team_id: int, start: date, end: date) -> Sequence[Schedule]:
        where = """
            team_id=%s AND (
                (parent_schedule_id IS NULL AND recurrence_rule='none' AND date BETWEEN %s AND %s)
                OR (parent_schedule_id IS NOT NULL
                    AND (date BETWEEN %s AND %s OR occurrence_date BETWEEN %s AND %s))
                OR (parent_schedule_id IS NULL AND recurrence_rule<>'none'
                    AND date<=%s AND (recurrence_end_date IS NULL OR recurrence_end_date>=%s))
            )
        """
        params = (int(team_id), start, end, start, end, start, end, end, start)
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, where, params)

    def list_members(self, head_id: int) -> Sequence[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select(cur, "parent_schedule_id=%s", (int(head_id),))

    def get_member(self, *, head_id: int, occurrence_date: date) -> Optional[Schedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            rows = self._select(
                cur, "parent_schedule_id=%s AND occurrence_date=%s", (int(head_id), occurrence_date)
            )
            return rows[0] if rows else None

    # -------- writes --------
    def create(self, schedule: Schedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_INSERT, _values(schedule))
            schedule_id = int(cur.lastrowid)
            self._write_categories(cur, schedule_id, schedule.category_ids)
            return schedule_id

    def update(self, schedule: Schedule) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE schedules
                SET team_id=%s, title=%s, date=%s, start_time=%s, end_time=%s, gather_time=%s, venue=%s,
                    notes=%s, student_can_register=%s, recurrence_rule=%s, recurrence_interval=%s,
                    recurrence_days=%s, recurrence_end_date=%s, parent_schedule_id=%s, occurrence_date=%s,
                    is_exception=%s, is_cancelled=%s
                WHERE schedule_id=%s
                """,
                _values(schedule) + (int(schedule.schedule_id),),
            )
            self._write_categories(cur, schedule.schedule_id, schedule.category_ids)
            return True

    def materialize_member(self, member: Schedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            # The unique (parent_schedule_id, occurrence_date) key makes concurrent materialization converge.
            cur.execute(
                _INSERT + " ON DUPLICATE KEY UPDATE schedule_id=LAST_INSERT_ID(schedule_id)",
                _values(member),
            )
            schedule_id = int(cur.lastrowid)
            if cur.rowcount == 1:
                self._write_categories(cur, schedule_id, member.category_ids)
            return schedule_id

    def propagate_from_head(self, head: Schedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT schedule_id FROM schedules
                WHERE parent_schedule_id=%s AND is_exception=0 AND is_cancelled=0
                FOR UPDATE
                """,
                (int(head.schedule_id),),
            )
            ids = [int(r["schedule_id"]) for r in fetchall(cur)]
            if not ids:
                return 0
            cur.execute(
                f"""
                UPDATE schedules
                SET title=%s, start_time=%s, end_time=%s, gather_time=%s, venue=%s, notes=%s,
                    student_can_register=%s
                WHERE schedule_id IN ({placeholders(ids)})
                """,
                (
                    head.title,
                    head.start_time,
                    head.end_time,
                    head.gather_time,
                    head.venue,
                    head.notes,
                    int(bool(head.student_can_register)),
                )
                + tuple(ids),
            )
            for schedule_id in ids:
                self._write_categories(cur, schedule_id, head.category_ids)
            return len(ids)

    def mark_exceptions(self, schedule_ids: Sequence[int]) -> None:
        if not schedule_ids:
            return
        ids = tuple(int(x) for x in schedule_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE schedules SET is_exception=1 WHERE schedule_id IN ({placeholders(ids)})", ids)

    def delete_standalone(self, schedule_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._delete_rows(cur, [int(schedule_id)]) > 0

    def cancel_occurrence(self, *, head: Schedule, occurrence_date: date) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT schedule_id FROM schedules WHERE parent_schedule_id=%s AND occurrence_date=%s FOR UPDATE",
                (int(head.schedule_id), occurrence_date),
            )
            existing = [int(r["schedule_id"]) for r in fetchall(cur)]
            self._delete_rows(cur, existing)
            tombstone = replace(
                head,
                schedule_id=0,
                date=occurrence_date,
                parent_schedule_id=head.schedule_id,
                occurrence_date=occurrence_date,
                recurrence=build_recurrence(rule="none", start=occurrence_date),
                category_ids=(),
                is_exception=True,
                is_cancelled=True,
            )
            cur.execute(_INSERT, _values(tombstone))

    def delete_forward(self, *, head_id: int, from_date: date, new_end_date: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT schedule_id FROM schedules WHERE parent_schedule_id=%s AND occurrence_date>=%s FOR UPDATE",
                (int(head_id), from_date),
            )
            deleted = self._delete_rows(cur, [int(r["schedule_id"]) for r in fetchall(cur)])
            cur.execute(
                "UPDATE schedules SET recurrence_end_date=%s WHERE schedule_id=%s",
                (new_end_date, int(head_id)),
            )
            return deleted

    def delete_series(self, head_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT schedule_id FROM schedules WHERE parent_schedule_id=%s FOR UPDATE",
                (int(head_id),),
            )
            ids = [int(r["schedule_id"]) for r in fetchall(cur)]
            deleted = self._delete_rows(cur, ids)
            deleted += self._delete_rows(cur, [int(head_id)])
            return deleted

    def split_series(self, *, head_id: int, cap_date: date, new_head: Schedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE schedules SET recurrence_end_date=%s WHERE schedule_id=%s",
                (cap_date, int(head_id)),
            )
            cur.execute(_INSERT, _values(new_head))
            new_id = int(cur.lastrowid)
            self._write_categories(cur, new_id, new_head.category_ids)
            cur.execute(
                "UPDATE schedules SET parent_schedule_id=%s WHERE parent_schedule_id=%s AND occurrence_date>%s",
                (new_id, int(head_id), cap_date),
            )
            return new_id

