from __future__ import annotations

from typing import Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Attendance, StatusCounts
from .repository import AttendanceRepository

_SELECT = "SELECT attendance_id, schedule_id, student_id, status, comment, updated_at FROM attendances"


def _row_to_attendance(r: dict) -> Attendance:
    return Attendance(
        attendance_id=int(r["attendance_id"]),
        schedule_id=int(r["schedule_id"]),
        student_id=int(r["student_id"]),
        status=AttendanceStatus(r["status"]),
        comment=r.get("comment"),
        updated_at=r.get("updated_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_attendance(r) if r else None

    def upsert(
        self,
        *,
        schedule_id: int,
        student_id: int,
        status: AttendanceStatus,
        comment: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendances(schedule_id, student_id, status, comment)
                VALUES(%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    attendance_id=LAST_INSERT_ID(attendance_id), status=VALUES(status), comment=VALUES(comment)
                """,
                (int(schedule_id), int(student_id), status.value, comment),
            )
            return int(cur.lastrowid)

    def move(self, *, attendance_id: int, target_schedule_id: int) -> bool:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "UPDATE attendances SET schedule_id=%s WHERE attendance_id=%s",
                    (int(target_schedule_id), int(attendance_id)),
                )
                return True
        except mysql.connector.IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                return False
            raise ConflictError(str(e)) from e

    def list_for_schedule(self, schedule_id: int) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE schedule_id=%s ORDER BY student_id ASC", (int(schedule_id),))
            return [_row_to_attendance(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[Attendance]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_SELECT} WHERE student_id=%s ORDER BY schedule_id ASC", (int(student_id),))
            return [_row_to_attendance(r) for r in fetchall(cur)]

    def counts_by_status(self, schedule_id: int) -> StatusCounts:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT status, COUNT(*) AS n FROM attendances WHERE schedule_id=%s GROUP BY status",
                (int(schedule_id),),
            )
            counts = {r["status"]: int(r["n"]) for r in fetchall(cur)}
            return StatusCounts(
                schedule_id=int(schedule_id),
                confirmed=counts.get(AttendanceStatus.CONFIRMED.value, 0),
                tentative=counts.get(AttendanceStatus.TENTATIVE.value, 0),
                declined=counts.get(AttendanceStatus.DECLINED.value, 0),
            )
