from __future__ import annotations

from typing import Optional, Sequence

from ..activity.service import ActivityLog
from ..categories.repository import CategoryRepository
from ..core.enums import PlayerType, Role, SiblingLinkStatus
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import SiblingLink, Student
from .repository import StudentRepository


class StudentService:
    def __init__(self, students: StudentRepository, categories: CategoryRepository, activity: ActivityLog):
        self._students = students
        self._categories = categories
        self._activity = activity

    def get(self, *, team_id: int, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student or student.team_id != int(team_id):
            raise NotFoundError(f"Student {student_id} not found")
        return student

    def list(self, team_id: int) -> Sequence[Student]:
        return list(self._students.list_for_team(int(team_id)))

    def set_categories(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        student_id: int,
        category_ids: Sequence[int],
    ) -> Student:
        student = self.get(team_id=team_id, student_id=student_id)
        if current_role == Role.STUDENT and actor_id != student.student_id:
            raise AuthorizationError("Students can only change their own categories")

        try:
            wanted = list(dict.fromkeys(int(c) for c in category_ids))
        except (TypeError, ValueError):
            raise ValidationError("categoryIds must contain integer ids")
        known = {c.category_id for c in self._categories.list_for_team(int(team_id))}
        missing = [c for c in wanted if c not in known]
        if missing:
            raise ValidationError(f"Unknown categories for this team: {missing}")

        self._students.replace_categories(student_id=student.student_id, category_ids=wanted)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="student.categories_set",
            entity_type="student", entity_id=student.student_id, category_ids=wanted,
        )
        return self.get(team_id=team_id, student_id=student_id)

    def set_player_type(
        self, *, team_id: int, actor_id: Optional[int], current_role: Role, student_id: int, player_type: str
    ) -> Student:
        if current_role != Role.COACH:
            raise AuthorizationError("Only coaches can change the player type")
        student = self.get(team_id=team_id, student_id=student_id)
        try:
            new_type = PlayerType((player_type or PlayerType.UNSET.value).lower())
        except ValueError:
            raise ValidationError(f"Unknown player type: {player_type!r}")
        self._students.set_player_type(student_id=student.student_id, player_type=new_type)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="student.player_type_set",
            entity_type="student", entity_id=student.student_id, player_type=new_type.value,
        )
        return self.get(team_id=team_id, student_id=student_id)

    def link_siblings(
        self, *, team_id: int, actor_id: Optional[int], student_id: int, sibling_student_id: int
    ) -> SiblingLink:
        if int(student_id) == int(sibling_student_id):
            raise ValidationError("A student cannot be their own sibling")
        a = self.get(team_id=team_id, student_id=student_id)
        b = self.get(team_id=team_id, student_id=sibling_student_id)
        link_id = self._students.create_sibling_link(
            team_id=int(team_id), student_id=a.student_id, sibling_student_id=b.student_id
        )
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="sibling.requested",
            entity_type="sibling_link", entity_id=link_id,
        )
        return self._reload_link(link_id)

    def _reload_link(self, link_id: int) -> SiblingLink:
        link = self._students.get_sibling_link(int(link_id))
        if link is None:
            raise NotFoundError(f"Sibling link {link_id} not found")
        return link

    def approve_sibling_link(
        self, *, team_id: int, actor_id: Optional[int], current_role: Role, link_id: int
    ) -> SiblingLink:
        if current_role != Role.COACH:
            raise AuthorizationError("Only coaches can approve sibling links")
        link = self._students.get_sibling_link(int(link_id))
        if not link or link.team_id != int(team_id):
            raise NotFoundError(f"Sibling link {link_id} not found")
        self._students.set_sibling_link_status(link_id=link.link_id, status=SiblingLinkStatus.APPROVED)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="sibling.approved",
            entity_type="sibling_link", entity_id=link.link_id,
        )
        return self._reload_link(link.link_id)
