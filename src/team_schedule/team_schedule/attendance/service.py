from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..activity.service import ActivityLog
from ..common.app_logger import get_logger
from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidTargetError,
    NotFoundError,
    ValidationError,
)
from ..schedules.model import Schedule
from ..schedules.service import ScheduleService
from ..students.service import StudentService
from .model import Attendance, StatusCounts
from .repository import AttendanceRepository

logger = get_logger("attendance")


def parse_status(value) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus.parse(value)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value!r}")


class AttendanceLedger:
    """One response per (schedule row, student); virtual occurrences are materialized on first write."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        schedules: ScheduleService,
        students: StudentService,
        activity: ActivityLog,
    ):
        self._attendance = attendance
        self._schedules = schedules
        self._students = students
        self._activity = activity

    @staticmethod
    def _check_can_register(schedule: Schedule, current_role: Role) -> None:
        if current_role == Role.STUDENT and not schedule.student_can_register:
            raise AuthorizationError("Registration for this schedule is closed to students")

    def set_status(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        schedule_id: int,
        student_id: int,
        status,
        comment: Optional[str] = None,
        occurrence_date: Optional[date] = None,
    ) -> Attendance:
        status = parse_status(status)
        student = self._students.get(team_id=team_id, student_id=student_id)
        if current_role == Role.STUDENT and actor_id != student.student_id:
            raise AuthorizationError("Students can only answer for themselves")

        # Check the lock before materializing so a rejected write leaves no member row behind.
        self._check_can_register(self._schedules.get(team_id=team_id, schedule_id=schedule_id), current_role)
        target = self._schedules.resolve_instance(
            team_id=team_id, schedule_id=schedule_id, occurrence_date=occurrence_date
        )
        self._check_can_register(target, current_role)

        comment = (comment or "").strip() or None
        attendance_id = self._attendance.upsert(
            schedule_id=target.schedule_id, student_id=student.student_id, status=status, comment=comment
        )
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="attendance.set",
            entity_type="attendance", entity_id=attendance_id,
            schedule_id=target.schedule_id, student_id=student.student_id, status=status.value,
        )
        return self._attendance.get_by_id(attendance_id)

    def get(self, *, team_id: int, attendance_id: int) -> Attendance:
        att = self._attendance.get_by_id(int(attendance_id))
        if not att:
            raise NotFoundError(f"Attendance {attendance_id} not found")
        try:
            self._schedules.get(team_id=team_id, schedule_id=att.schedule_id)
        except NotFoundError:
            raise NotFoundError(f"Attendance {attendance_id} not found")
        return att

    def transfer(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        attendance_id: int,
        target_schedule_id: int,
        expected_date: Optional[date] = None,
    ) -> Attendance:
        """Move a participant to another schedule row, keeping the attendance id."""
        if current_role != Role.COACH:
            raise AuthorizationError("Only coaches can move participants")
        att = self.get(team_id=team_id, attendance_id=attendance_id)

        try:
            target = self._schedules.resolve_instance(
                team_id=team_id, schedule_id=target_schedule_id, occurrence_date=expected_date
            )
        except NotFoundError:
            raise InvalidTargetError(f"Target schedule {target_schedule_id} is not available")
        if expected_date is not None and target.date != expected_date:
            raise InvalidTargetError(f"Target schedule {target_schedule_id} is not on {expected_date}")

        if target.schedule_id == att.schedule_id:
            return att

        if not self._attendance.move(attendance_id=att.attendance_id, target_schedule_id=target.schedule_id):
            raise ConflictError(
                f"Student {att.student_id} already has an attendance on schedule {target.schedule_id}"
            )
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="attendance.transferred",
            entity_type="attendance", entity_id=att.attendance_id,
            from_schedule_id=att.schedule_id, to_schedule_id=target.schedule_id,
        )
        return self._attendance.get_by_id(att.attendance_id)

    def counts_by_status(
        self, *, team_id: int, schedule_id: int, occurrence_date: Optional[date] = None
    ) -> StatusCounts:
        row = self._schedules.stored_instance(team_id=team_id, schedule_id=schedule_id, occurrence_date=occurrence_date)
        if row is None:
            # Still virtual: nobody can have answered yet.
            return StatusCounts(schedule_id=None)
        return self._attendance.counts_by_status(row.schedule_id)

    def list_for_schedule(self, *, team_id: int, schedule_id: int) -> Sequence[Attendance]:
        schedule = self._schedules.get(team_id=team_id, schedule_id=schedule_id)
        return list(self._attendance.list_for_schedule(schedule.schedule_id))

    def list_for_student(self, *, team_id: int, student_id: int) -> Sequence[Attendance]:
        student = self._students.get(team_id=team_id, student_id=student_id)
        return list(self._attendance.list_for_student(student.student_id))
