from __future__ import annotations

from datetime import date, datetime, time

import pytest

from src.team_schedule.team_schedule.core.enums import PlayerType, Role
from src.team_schedule.team_schedule.core.exceptions import AuthorizationError, ValidationError
from src.team_schedule.team_schedule.schedules.model import ScheduleDraft
from src.team_schedule.team_schedule.students.model import Student
from src.team_schedule.team_schedule.visibility.filter import UNCATEGORIZED_RANK, CategoryVisibilityFilter

COACH = dict(team_id=1, actor_id=100, current_role=Role.COACH)

SAT = date(2025, 4, 12)


def add_event(world, title, categories=(), **kw):
    draft = ScheduleDraft(title=title, date=SAT, start_time=time(9, 0), category_ids=tuple(categories), **kw)
    return world.schedule_service.upsert_head(draft=draft, **COACH)


def calendar(world, student_id, **kw):
    return world.calendar_service.list_for_student(team_id=1, student_id=student_id, start=SAT, end=SAT, **kw)


def titles(entries):
    return [e.instance.title for e in entries]


def test_filter_intersects_subscriptions(world):
    cats = world.categories_repo.list_for_team(1)
    flt = CategoryVisibilityFilter(cats, world.students_repo.get_by_id(1))

    assert flt.is_visible([world.cat.u12])
    assert flt.is_visible([world.cat.u10, world.cat.u12])
    assert not flt.is_visible([world.cat.u10])
    assert flt.is_visible([])
    assert flt.rank([]) == UNCATEGORIZED_RANK
    assert flt.rank([world.cat.u8, world.cat.u12]) == 2


def test_school_only_category_needs_school_player(world):
    cats = world.categories_repo.list_for_team(1)
    team_player = Student(
        student_id=9, team_id=1, name="Aoi", player_type=PlayerType.TEAM, category_ids=(world.cat.school,)
    )
    school_player = world.students_repo.get_by_id(3)

    assert not CategoryVisibilityFilter(cats, team_player).is_visible([world.cat.school])
    assert CategoryVisibilityFilter(cats, school_player).is_visible([world.cat.school])


def test_editable_follows_registration_flag(world):
    cats = world.categories_repo.list_for_team(1)
    flt = CategoryVisibilityFilter(cats, world.students_repo.get_by_id(1))

    assert flt.evaluate([world.cat.u12], student_can_register=False).editable is False
    assert flt.evaluate([world.cat.u12]).editable is True
    assert flt.evaluate([world.cat.u10]).visible is False


def test_student_calendar_shows_matching_and_uncategorized(world):
    c = world.cat
    add_event(world, "U-12 drills", [c.u12])
    add_event(world, "U-10 drills", [c.u10])
    add_event(world, "Team meeting")
    add_event(world, "School class", [c.school])

    assert titles(calendar(world, 1)) == ["Team meeting", "U-12 drills"]
    assert titles(calendar(world, 2)) == ["Team meeting", "U-10 drills"]
    assert titles(calendar(world, 3)) == ["Team meeting", "School class"]


def test_calendar_orders_by_category_rank_at_same_time(world):
    c = world.cat
    world.student_service.set_categories(team_id=1, actor_id=100, current_role=Role.COACH, student_id=1,
                                         category_ids=[c.u12, c.u8])
    add_event(world, "A older group", [c.u12])
    add_event(world, "B younger group", [c.u8])
    add_event(world, "C everyone")

    assert titles(calendar(world, 1)) == ["C everyone", "B younger group", "A older group"]


def test_calendar_reflects_subscription_changes_immediately(world):
    add_event(world, "U-10 drills", [world.cat.u10])
    assert titles(calendar(world, 3)) == []

    world.student_service.set_categories(
        team_id=1, actor_id=3, current_role=Role.STUDENT, student_id=3, category_ids=[world.cat.u10]
    )

    assert titles(calendar(world, 3)) == ["U-10 drills"]


def test_calendar_marks_locked_instances(world):
    add_event(world, "Locked", [world.cat.u12], student_can_register=False)
    add_event(world, "Open", [world.cat.u12])

    editable = {e.instance.title: e.editable for e in calendar(world, 1)}

    assert editable == {"Locked": False, "Open": True}


def test_calendar_includes_virtual_occurrences(world):
    world.schedule_service.upsert_head(
        draft=ScheduleDraft(
            title="Practice",
            date=date(2025, 4, 7),
            category_ids=(world.cat.u12,),
            recurrence_rule="weekly",
            recurrence_days=(6,),
        ),
        **COACH,
    )

    entries = calendar(world, 1)

    assert [(e.instance.date, e.instance.is_virtual) for e in entries] == [(SAT, True)]


def test_student_sees_only_own_calendar(world):
    with pytest.raises(AuthorizationError):
        calendar(world, 2, actor_id=1, current_role=Role.STUDENT)
    assert calendar(world, 1, actor_id=1, current_role=Role.STUDENT) == []


def test_subscription_to_unknown_category_is_rejected(world):
    with pytest.raises(ValidationError):
        world.student_service.set_categories(
            team_id=1, actor_id=100, current_role=Role.COACH, student_id=1, category_ids=[world.cat.other]
        )


def share(world, title, categories=(), created_at=None):
    doc_id = world.documents_repo.create(
        team_id=1, title=title, file_url=f"https://files.example/{title}.pdf", category_ids=categories,
        created_at=created_at,
    )
    return world.documents_repo.get_by_id(doc_id)


def test_documents_follow_the_same_visibility(world):
    c = world.cat
    share(world, "u12-plan", [c.u12], datetime(2025, 4, 1, 9))
    share(world, "school-rules", [c.school], datetime(2025, 4, 2, 9))
    share(world, "newsletter", [], datetime(2025, 4, 3, 9))

    def visible(student_id):
        return [d.title for d in world.document_service.list_visible(team_id=1, student_id=student_id)]

    assert visible(1) == ["newsletter", "u12-plan"]
    assert visible(3) == ["newsletter", "school-rules"]
    assert visible(2) == ["newsletter"]


def test_document_service_create(world):
    doc = world.document_service.create(
        title="Kit list", file_url="https://files.example/kit.pdf", category_ids=[world.cat.u10], **COACH
    )

    assert doc.category_ids == (world.cat.u10,)
    assert "document.shared" in world.activity_repo.actions()

    with pytest.raises(ValidationError):
        world.document_service.create(title="Bad", file_url="https://x", category_ids=[999], **COACH)
    with pytest.raises(AuthorizationError):
        world.document_service.create(
            team_id=1, actor_id=1, current_role=Role.STUDENT, title="Mine", file_url="https://x"
        )
