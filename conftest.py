"""Shared pytest fixtures: in-memory repositories with the same unique-key rules as the MySQL schema."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from types import SimpleNamespace
from typing import Optional

import pytest

from src.team_schedule.team_schedule.activity.service import ActivityLog
from src.team_schedule.team_schedule.attendance.model import Attendance, StatusCounts
from src.team_schedule.team_schedule.attendance.service import AttendanceLedger
from src.team_schedule.team_schedule.categories.model import Category
from src.team_schedule.team_schedule.categories.service import CategoryService
from src.team_schedule.team_schedule.container import Container
from src.team_schedule.team_schedule.core.enums import AttendanceStatus, PlayerType
from src.team_schedule.team_schedule.documents.model import SharedDocument
from src.team_schedule.team_schedule.documents.service import DocumentService
from src.team_schedule.team_schedule.schedules.model import Schedule
from src.team_schedule.team_schedule.schedules.recurrence import with_end_date
from src.team_schedule.team_schedule.schedules.service import ScheduleService
from src.team_schedule.team_schedule.students.model import SiblingLink, Student
from src.team_schedule.team_schedule.students.service import StudentService
from src.team_schedule.team_schedule.teams.model import Team
from src.team_schedule.team_schedule.teams.service import TeamService
from src.team_schedule.team_schedule.tuition.model import TuitionPayment
from src.team_schedule.team_schedule.tuition.service import TuitionService
from src.team_schedule.team_schedule.visibility.service import StudentCalendarService


class FakeActivityRepo:
    def __init__(self):
        self.events = []

    def append(self, event):
        self.events.append(replace(event, event_id=len(self.events) + 1))
        return len(self.events)

    def list_recent(self, *, team_id, limit=50):
        rows = [e for e in self.events if e.team_id == int(team_id)]
        return list(reversed(rows))[: int(limit)]

    def actions(self):
        return [e.action for e in self.events]


class FakeTeamRepo:
    def __init__(self):
        self.teams: dict[int, Team] = {}

    def add(self, team: Team) -> Team:
        self.teams[team.team_id] = team
        return team

    def get_by_id(self, team_id):
        return self.teams.get(int(team_id))

    def update_fees(self, team):
        self.teams[team.team_id] = team
        return True


class FakeCategoryRepo:
    def __init__(self):
        self.rows: dict[int, Category] = {}
        self._next_id = 1

    def list_for_team(self, team_id):
        return sorted((c for c in self.rows.values() if c.team_id == int(team_id)), key=lambda c: c.display_order)

    def get_by_id(self, category_id):
        return self.rows.get(int(category_id))

    def create(self, *, team_id, name, description=None, is_school_only=False):
        cid = self._next_id
        self._next_id += 1
        self.rows[cid] = Category(
            category_id=cid,
            team_id=int(team_id),
            name=name,
            display_order=len(self.list_for_team(team_id)),
            is_school_only=bool(is_school_only),
            description=description,
        )
        return cid

    def update(self, *, category_id, name, description, is_school_only):
        c = self.rows[int(category_id)]
        self.rows[c.category_id] = replace(c, name=name, description=description, is_school_only=is_school_only)
        return True

    def delete(self, *, team_id, category_id):
        if self.rows.pop(int(category_id), None) is None:
            return False
        self.apply_order(team_id=team_id, ordered_ids=[c.category_id for c in self.list_for_team(team_id)])
        return True

    def apply_order(self, *, team_id, ordered_ids):
        for pos, cid in enumerate(ordered_ids):
            self.rows[int(cid)] = replace(self.rows[int(cid)], display_order=pos)


class FakeStudentRepo:
    def __init__(self):
        self.rows: dict[int, Student] = {}
        self.links: dict[int, SiblingLink] = {}

    def add(self, student: Student) -> Student:
        self.rows[student.student_id] = student
        return student

    def get_by_id(self, student_id):
        return self.rows.get(int(student_id))

    def list_for_team(self, team_id, *, player_types=None):
        out = [s for s in self.rows.values() if s.team_id == int(team_id)]
        if player_types:
            out = [s for s in out if s.player_type in player_types]
        return sorted(out, key=lambda s: s.student_id)

    def replace_categories(self, *, student_id, category_ids):
        self.rows[int(student_id)] = replace(self.rows[int(student_id)], category_ids=tuple(category_ids))

    def set_player_type(self, *, student_id, player_type):
        self.rows[int(student_id)] = replace(self.rows[int(student_id)], player_type=player_type)
        return True

    def create_sibling_link(self, *, team_id, student_id, sibling_student_id):
        link_id = len(self.links) + 1
        self.links[link_id] = SiblingLink(
            link_id=link_id, team_id=int(team_id), student_id=int(student_id), sibling_student_id=int(sibling_student_id)
        )
        return link_id

    def get_sibling_link(self, link_id):
        return self.links.get(int(link_id))

    def set_sibling_link_status(self, *, link_id, status):
        self.links[int(link_id)] = replace(self.links[int(link_id)], status=status)
        return True

    def list_sibling_links(self, team_id, *, status=None):
        return [
            link
            for link in self.links.values()
            if link.team_id == int(team_id) and (status is None or link.status == status)
        ]


class FakeAttendanceRepo:
    """Unique (schedule_id, student_id), like uq_attendance_schedule_student."""

    def __init__(self):
        self.rows: dict[int, Attendance] = {}
        self._next_id = 1

    def get_by_id(self, attendance_id):
        return self.rows.get(int(attendance_id))

    def _find(self, *, schedule_id, student_id):
        for a in self.rows.values():
            if a.schedule_id == int(schedule_id) and a.student_id == int(student_id):
                return a
        return None

    def upsert(self, *, schedule_id, student_id, status, comment=None):
        existing = self._find(schedule_id=schedule_id, student_id=student_id)
        if existing:
            self.rows[existing.attendance_id] = replace(existing, status=status, comment=comment)
            return existing.attendance_id
        aid = self._next_id
        self._next_id += 1
        self.rows[aid] = Attendance(
            attendance_id=aid,
            schedule_id=int(schedule_id),
            student_id=int(student_id),
            status=status,
            comment=comment,
            updated_at=datetime(2025, 4, 1, 12, 0),
        )
        return aid

    def move(self, *, attendance_id, target_schedule_id):
        att = self.rows[int(attendance_id)]
        clash = self._find(schedule_id=target_schedule_id, student_id=att.student_id)
        if clash and clash.attendance_id != att.attendance_id:
            return False
        self.rows[att.attendance_id] = replace(att, schedule_id=int(target_schedule_id))
        return True

    def list_for_schedule(self, schedule_id):
        return [a for a in self.rows.values() if a.schedule_id == int(schedule_id)]

    def list_for_student(self, student_id):
        return [a for a in self.rows.values() if a.student_id == int(student_id)]

    def counts_by_status(self, schedule_id):
        rows = self.list_for_schedule(schedule_id)
        return StatusCounts(
            schedule_id=int(schedule_id),
            confirmed=sum(1 for a in rows if a.status == AttendanceStatus.CONFIRMED),
            tentative=sum(1 for a in rows if a.status == AttendanceStatus.TENTATIVE),
            declined=sum(1 for a in rows if a.status == AttendanceStatus.DECLINED),
        )

    def delete_for_schedules(self, schedule_ids):
        ids = {int(x) for x in schedule_ids}
        for aid in [a.attendance_id for a in self.rows.values() if a.schedule_id in ids]:
            del self.rows[aid]


class FakeScheduleRepo:
    """Unique (parent_schedule_id, occurrence_date), like uq_schedule_member_slot.

    Deleting schedule rows also deletes their attendances.
    """

    def __init__(self, attendance: Optional[FakeAttendanceRepo] = None):
        self.rows: dict[int, Schedule] = {}
        self.attendance = attendance
        self._next_id = 1

    def _insert(self, schedule):
        sid = self._next_id
        self._next_id += 1
        self.rows[sid] = replace(schedule, schedule_id=sid)
        return sid

    def _delete(self, ids):
        ids = [int(i) for i in ids if int(i) in self.rows]
        for i in ids:
            del self.rows[i]
        if self.attendance is not None:
            self.attendance.delete_for_schedules(ids)
        return len(ids)

    def get_by_id(self, schedule_id):
        return self.rows.get(int(schedule_id))

    def create(self, schedule):
        return self._insert(schedule)

    def update(self, schedule):
        self.rows[schedule.schedule_id] = schedule
        return True

    def list_range(self, *, team_id, start, end):
        out = []
        for r in self.rows.values():
            if r.team_id != int(team_id):
                continue
            if r.parent_schedule_id is not None:
                slot = r.occurrence_date
                keep = start <= r.date <= end or (slot is not None and start <= slot <= end)
            elif r.is_series_head:
                keep = r.date <= end and (r.recurrence.end_date is None or r.recurrence.end_date >= start)
            else:
                keep = start <= r.date <= end
            if keep:
                out.append(r)
        return sorted(out, key=lambda r: (r.date, r.schedule_id))

    def list_members(self, head_id):
        return sorted(
            (r for r in self.rows.values() if r.parent_schedule_id == int(head_id)),
            key=lambda r: (r.date, r.schedule_id),
        )

    def get_member(self, *, head_id, occurrence_date):
        for r in self.rows.values():
            if r.parent_schedule_id == int(head_id) and r.occurrence_date == occurrence_date:
                return r
        return None

    def materialize_member(self, member):
        existing = self.get_member(head_id=member.parent_schedule_id, occurrence_date=member.occurrence_date)
        if existing:
            return existing.schedule_id
        return self._insert(member)

    def propagate_from_head(self, head):
        touched = 0
        for m in self.list_members(head.schedule_id):
            if m.is_exception or m.is_cancelled:
                continue
            self.rows[m.schedule_id] = replace(
                m,
                title=head.title,
                start_time=head.start_time,
                end_time=head.end_time,
                gather_time=head.gather_time,
                venue=head.venue,
                notes=head.notes,
                category_ids=head.category_ids,
                student_can_register=head.student_can_register,
            )
            touched += 1
        return touched

    def mark_exceptions(self, schedule_ids):
        for i in schedule_ids:
            self.rows[int(i)] = replace(self.rows[int(i)], is_exception=True)

    def delete_standalone(self, schedule_id):
        return self._delete([schedule_id]) > 0

    def cancel_occurrence(self, *, head, occurrence_date):
        existing = self.get_member(head_id=head.schedule_id, occurrence_date=occurrence_date)
        if existing:
            self._delete([existing.schedule_id])
        self._insert(
            Schedule(
                schedule_id=0,
                team_id=head.team_id,
                title=head.title,
                date=occurrence_date,
                parent_schedule_id=head.schedule_id,
                occurrence_date=occurrence_date,
                is_exception=True,
                is_cancelled=True,
            )
        )

    def delete_forward(self, *, head_id, from_date, new_end_date):
        ids = [m.schedule_id for m in self.list_members(head_id) if m.occurrence_date >= from_date]
        deleted = self._delete(ids)
        head = self.rows[int(head_id)]
        self.rows[head.schedule_id] = replace(head, recurrence=with_end_date(head.recurrence, new_end_date))
        return deleted

    def delete_series(self, head_id):
        ids = [m.schedule_id for m in self.list_members(head_id)] + [int(head_id)]
        return self._delete(ids)

    def split_series(self, *, head_id, cap_date, new_head):
        head = self.rows[int(head_id)]
        self.rows[head.schedule_id] = replace(head, recurrence=with_end_date(head.recurrence, cap_date))
        new_id = self._insert(new_head)
        for m in self.list_members(head_id):
            if m.occurrence_date > cap_date:
                self.rows[m.schedule_id] = replace(m, parent_schedule_id=new_id)
        return new_id


class FakeTuitionRepo:
    """Unique (student_id, year, month), like uq_tuition_student_period."""

    def __init__(self):
        self.rows: dict[int, TuitionPayment] = {}
        self._next_id = 1

    def _key_exists(self, student_id, year, month):
        return any((p.student_id, p.year, p.month) == (student_id, year, month) for p in self.rows.values())

    def _insert_ignore(self, team_id, year, month, lines):
        inserted = 0
        for line in lines:
            if self._key_exists(line.student_id, year, month):
                continue
            pid = self._next_id
            self._next_id += 1
            self.rows[pid] = TuitionPayment(
                payment_id=pid,
                student_id=line.student_id,
                team_id=int(team_id),
                year=year,
                month=month,
                category=line.category,
                base_amount=line.base_amount,
                discount=line.discount,
                annual_fee=line.annual_fee,
                entrance_fee=line.entrance_fee,
                insurance_fee=line.insurance_fee,
                spot_fee=line.spot_fee,
                amount=line.amount,
            )
            inserted += 1
        return inserted

    def get_by_id(self, payment_id):
        return self.rows.get(int(payment_id))

    def list_for_month(self, *, team_id, year, month):
        return sorted(
            (p for p in self.rows.values() if (p.team_id, p.year, p.month) == (int(team_id), year, month)),
            key=lambda p: p.student_id,
        )

    def insert_missing(self, *, team_id, year, month, lines):
        return self._insert_ignore(team_id, year, month, lines)

    def replace_unpaid(self, *, team_id, year, month, lines):
        unpaid = [p.payment_id for p in self.list_for_month(team_id=team_id, year=year, month=month) if not p.is_paid]
        for pid in unpaid:
            del self.rows[pid]
        return len(unpaid), self._insert_ignore(team_id, year, month, lines)

    def update_amounts(self, payment):
        if self.rows[payment.payment_id].is_paid:
            return False
        self.rows[payment.payment_id] = payment
        return True

    def set_paid(self, *, payment_id, is_paid, paid_at):
        self.rows[int(payment_id)] = replace(self.rows[int(payment_id)], is_paid=is_paid, paid_at=paid_at)
        return True


class FakeDocumentRepo:
    def __init__(self):
        self.rows: dict[int, SharedDocument] = {}

    def list_for_team(self, team_id):
        docs = [d for d in self.rows.values() if d.team_id == int(team_id)]
        return sorted(docs, key=lambda d: (d.created_at, d.document_id), reverse=True)

    def get_by_id(self, document_id):
        return self.rows.get(int(document_id))

    def create(self, *, team_id, title, file_url, category_ids, created_at=None):
        did = len(self.rows) + 1
        self.rows[did] = SharedDocument(
            document_id=did,
            team_id=int(team_id),
            title=title,
            file_url=file_url,
            category_ids=tuple(category_ids),
            created_at=created_at or datetime(2025, 4, 1, 9, 0),
        )
        return did

    def delete(self, document_id):
        return self.rows.pop(int(document_id), None) is not None


def _build_world() -> SimpleNamespace:
    activity_repo = FakeActivityRepo()
    teams_repo = FakeTeamRepo()
    categories_repo = FakeCategoryRepo()
    students_repo = FakeStudentRepo()
    attendance_repo = FakeAttendanceRepo()
    schedules_repo = FakeScheduleRepo(attendance_repo)
    tuition_repo = FakeTuitionRepo()
    documents_repo = FakeDocumentRepo()

    teams_repo.add(
        Team(
            team_id=1,
            name="Demo FC",
            monthly_fee_member=5000,
            monthly_fee_school=3000,
            sibling_discount=1000,
            annual_fee=6000,
            entrance_fee=3000,
            insurance_fee=800,
            annual_fee_month=4,
            insurance_fee_month=4,
        )
    )
    teams_repo.add(Team(team_id=2, name="Other FC"))

    u8 = categories_repo.create(team_id=1, name="U-8")
    u10 = categories_repo.create(team_id=1, name="U-10")
    u12 = categories_repo.create(team_id=1, name="U-12")
    school = categories_repo.create(team_id=1, name="School", is_school_only=True)
    other = categories_repo.create(team_id=2, name="Other U-10")

    students_repo.add(Student(student_id=1, team_id=1, name="Haruto", player_type=PlayerType.TEAM, category_ids=(u12,)))
    students_repo.add(Student(student_id=2, team_id=1, name="Yui", player_type=PlayerType.TEAM, category_ids=(u10,)))
    students_repo.add(
        Student(student_id=3, team_id=1, name="Ren", player_type=PlayerType.SCHOOL, category_ids=(school,))
    )
    students_repo.add(
        Student(student_id=4, team_id=1, name="Sora", player_type=PlayerType.INACTIVE, category_ids=(u12,))
    )
    students_repo.add(Student(student_id=5, team_id=2, name="Kenji", player_type=PlayerType.TEAM))

    activity = ActivityLog(activity_repo)
    team_service = TeamService(teams_repo, activity)
    category_service = CategoryService(categories_repo, activity)
    student_service = StudentService(students_repo, categories_repo, activity)
    schedule_service = ScheduleService(schedules_repo, categories_repo, activity)
    attendance_ledger = AttendanceLedger(attendance_repo, schedule_service, student_service, activity)
    calendar_service = StudentCalendarService(schedule_service, student_service, categories_repo)
    document_service = DocumentService(documents_repo, student_service, categories_repo, activity)
    tuition_service = TuitionService(tuition_repo, team_service, students_repo, activity)

    return SimpleNamespace(
        cat=SimpleNamespace(u8=u8, u10=u10, u12=u12, school=school, other=other),
        activity_repo=activity_repo,
        teams_repo=teams_repo,
        categories_repo=categories_repo,
        students_repo=students_repo,
        attendance_repo=attendance_repo,
        schedules_repo=schedules_repo,
        tuition_repo=tuition_repo,
        documents_repo=documents_repo,
        activity=activity,
        team_service=team_service,
        category_service=category_service,
        student_service=student_service,
        schedule_service=schedule_service,
        attendance_ledger=attendance_ledger,
        calendar_service=calendar_service,
        document_service=document_service,
        tuition_service=tuition_service,
    )


@pytest.fixture()
def world() -> SimpleNamespace:
    return _build_world()


@pytest.fixture()
def client(world, monkeypatch):
    from src.team_schedule.team_schedule.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    container = Container(
        conn=None,
        teams_repo=world.teams_repo,
        categories_repo=world.categories_repo,
        students_repo=world.students_repo,
        schedules_repo=world.schedules_repo,
        attendance_repo=world.attendance_repo,
        tuition_repo=world.tuition_repo,
        documents_repo=world.documents_repo,
        activity_repo=world.activity_repo,
        activity_log=world.activity,
        team_service=world.team_service,
        category_service=world.category_service,
        student_service=world.student_service,
        schedule_service=world.schedule_service,
        attendance_ledger=world.attendance_ledger,
        student_calendar_service=world.calendar_service,
        document_service=world.document_service,
        tuition_service=world.tuition_service,
    )
    app = create_app(container)
    return app.test_client()


COACH = {"X-Team-Id": "1", "X-Actor-Id": "100", "X-Role": "coach"}


@pytest.fixture()
def coach_headers() -> dict:
    return dict(COACH)
