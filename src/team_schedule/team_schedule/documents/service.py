from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..activity.service import ActivityLog
from ..categories.repository import CategoryRepository
from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from ..students.service import StudentService
from ..visibility.filter import CategoryVisibilityFilter
from .model import SharedDocument
from .repository import DocumentRepository


class DocumentService:
    def __init__(
        self,
        documents: DocumentRepository,
        students: StudentService,
        categories: CategoryRepository,
        activity: ActivityLog,
    ):
        self._documents = documents
        self._students = students
        self._categories = categories
        self._activity = activity

    def create(
        self,
        *,
        team_id: int,
        actor_id: Optional[int],
        current_role: Role,
        title: str,
        file_url: str,
        category_ids: Sequence[int] = (),
    ) -> SharedDocument:
        if current_role != Role.COACH:
            raise AuthorizationError("Only coaches can share documents")
        title = require_non_empty(title, "title")
        file_url = require_non_empty(file_url, "fileUrl")
        try:
            wanted = list(dict.fromkeys(int(c) for c in category_ids))
        except (TypeError, ValueError):
            raise ValidationError("categoryIds must contain integer ids")
        known = {c.category_id for c in self._categories.list_for_team(int(team_id))}
        missing = [c for c in wanted if c not in known]
        if missing:
            raise ValidationError(f"Unknown categories for this team: {missing}")

        document_id = self._documents.create(team_id=int(team_id), title=title, file_url=file_url, category_ids=wanted)
        self._activity.record(
            team_id=team_id, actor_id=actor_id, action="document.shared",
            entity_type="document", entity_id=document_id, title=title,
        )
        doc = self._documents.get_by_id(document_id)
        if doc is None:
            raise NotFoundError(f"Document {document_id} not found")
        return doc

    def list_visible(
        self,
        *,
        team_id: int,
        student_id: int,
        actor_id: Optional[int] = None,
        current_role: Role = Role.COACH,
    ) -> list[SharedDocument]:
        """Documents whose categories intersect the student's subscriptions, newest first."""
        student = self._students.get(team_id=team_id, student_id=student_id)
        if current_role == Role.STUDENT and actor_id != student.student_id:
            raise AuthorizationError("Students can only view their own documents")

        flt = CategoryVisibilityFilter(self._categories.list_for_team(int(team_id)), student)
        visible = [d for d in self._documents.list_for_team(int(team_id)) if flt.is_visible(d.category_ids)]
        visible.sort(key=lambda d: flt.rank(d.category_ids))
        visible.sort(key=lambda d: d.created_at or datetime.min, reverse=True)
        return visible
