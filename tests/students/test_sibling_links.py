import pytest

from src.team_schedule.team_schedule.core.enums import Role, SiblingLinkStatus
from src.team_schedule.team_schedule.core.exceptions import NotFoundError, ValidationError

COACH = dict(team_id=1, actor_id=100, current_role=Role.COACH)


def test_link_then_approve(world):
    link = world.student_service.link_siblings(team_id=1, actor_id=1, student_id=1, sibling_student_id=2)
    assert link.status == SiblingLinkStatus.PENDING

    approved = world.student_service.approve_sibling_link(link_id=link.link_id, **COACH)

    assert approved.link_id == link.link_id
    assert approved.status == SiblingLinkStatus.APPROVED
    assert "sibling.approved" in world.activity_repo.actions()


def test_student_cannot_be_own_sibling(world):
    with pytest.raises(ValidationError):
        world.student_service.link_siblings(team_id=1, actor_id=1, student_id=1, sibling_student_id=1)


def test_unknown_link_is_not_found(world):
    with pytest.raises(NotFoundError):
        world.student_service.approve_sibling_link(link_id=99, **COACH)


def test_link_missing_on_reload_is_not_found(world, monkeypatch):
    monkeypatch.setattr(world.students_repo, "get_sibling_link", lambda link_id: None)

    with pytest.raises(NotFoundError):
        world.student_service.link_siblings(team_id=1, actor_id=1, student_id=1, sibling_student_id=2)
