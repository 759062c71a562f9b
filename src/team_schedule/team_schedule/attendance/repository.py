from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import Attendance, StatusCounts


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[Attendance]:
        raise NotImplementedError

    def upsert(
        self,
        *,
        schedule_id: int,
        student_id: int,
        status: AttendanceStatus,
        comment: Optional[str] = None,
    ) -> int:
        """Insert or update the row for ``(schedule_id, student_id)``. Returns attendance_id."""

        raise NotImplementedError

    def move(self, *, attendance_id: int, target_schedule_id: int) -> bool:
        """Rewrite ``schedule_id`` in place.

        Returns False when the student already has a row on the target.
        """

        raise NotImplementedError

    def list_for_schedule(self, schedule_id: int) -> Sequence[Attendance]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[Attendance]:
        raise NotImplementedError

    def counts_by_status(self, schedule_id: int) -> StatusCounts:
        raise NotImplementedError
