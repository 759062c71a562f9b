from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..categories.repository import CategoryRepository
from ..core.enums import Role
from ..core.exceptions import AuthorizationError
from ..schedules.model import ScheduleInstance
from ..schedules.service import ScheduleService
from ..students.service import StudentService
from .filter import CategoryVisibilityFilter


@dataclass(frozen=True)
class CalendarEntry:
    instance: ScheduleInstance
    editable: bool


class StudentCalendarService:
    """Effective schedule instances a student may see, recomputed from stored subscriptions on every call."""

    def __init__(self, schedules: ScheduleService, students: StudentService, categories: CategoryRepository):
        self._schedules = schedules
        self._students = students
        self._categories = categories

    def list_for_student(
        self,
        *,
        team_id: int,
        student_id: int,
        start: date,
        end: date,
        actor_id: Optional[int] = None,
        current_role: Role = Role.COACH,
    ) -> list[CalendarEntry]:
        student = self._students.get(team_id=team_id, student_id=student_id)
        if current_role == Role.STUDENT and actor_id != student.student_id:
            raise AuthorizationError("Students can only view their own calendar")

        flt = CategoryVisibilityFilter(self._categories.list_for_team(int(team_id)), student)
        entries = []
        for inst in self._schedules.list_effective_instances(team_id=team_id, start=start, end=end):
            vis = flt.evaluate(inst.category_ids, student_can_register=inst.student_can_register)
            if vis.visible:
                entries.append((flt.rank(inst.category_ids), CalendarEntry(instance=inst, editable=vis.editable)))

        entries.sort(key=lambda e: (e[1].instance.date, e[1].instance.start_time or time.min, e[0], e[1].instance.title))
        return [entry for _, entry in entries]
