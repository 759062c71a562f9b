from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .activity.mysql_activity_repository import MySQLActivityRepository
from .activity.service import ActivityLog
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceLedger
from .categories.mysql_category_repository import MySQLCategoryRepository
from .categories.service import CategoryService
from .database.connection import DBConfig, DatabaseConnection
from .documents.mysql_document_repository import MySQLDocumentRepository
from .documents.service import DocumentService
from .schedules.mysql_schedule_repository import MySQLScheduleRepository
from .schedules.service import ScheduleService
from .students.mysql_student_repository import MySQLStudentRepository
from .students.service import StudentService
from .teams.mysql_team_repository import MySQLTeamRepository
from .teams.service import TeamService
from .tuition.calculator.standard_calculator import StandardTuitionCalculator
from .tuition.mysql_tuition_repository import MySQLTuitionRepository
from .tuition.service import TuitionService
from .visibility.service import StudentCalendarService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    teams_repo: MySQLTeamRepository
    categories_repo: MySQLCategoryRepository
    students_repo: MySQLStudentRepository
    schedules_repo: MySQLScheduleRepository
    attendance_repo: MySQLAttendanceRepository
    tuition_repo: MySQLTuitionRepository
    documents_repo: MySQLDocumentRepository
    activity_repo: MySQLActivityRepository

    activity_log: ActivityLog
    team_service: TeamService
    category_service: CategoryService
    student_service: StudentService
    schedule_service: ScheduleService
    attendance_ledger: AttendanceLedger
    student_calendar_service: StudentCalendarService
    document_service: DocumentService
    tuition_service: TuitionService


def build_container(*, db_config: Mapping[str, Any]) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    teams_repo = MySQLTeamRepository(conn)
    categories_repo = MySQLCategoryRepository(conn)
    students_repo = MySQLStudentRepository(conn)
    schedules_repo = MySQLScheduleRepository(conn)
    attendance_repo = MySQLAttendanceRepository(conn)
    tuition_repo = MySQLTuitionRepository(conn)
    documents_repo = MySQLDocumentRepository(conn)
    activity_repo = MySQLActivityRepository(conn)

    activity_log = ActivityLog(activity_repo)
    team_service = TeamService(teams_repo, activity_log)
    category_service = CategoryService(categories_repo, activity_log)
    student_service = StudentService(students_repo, categories_repo, activity_log)
    schedule_service = ScheduleService(schedules_repo, categories_repo, activity_log)
    attendance_ledger = AttendanceLedger(attendance_repo, schedule_service, student_service, activity_log)
    student_calendar_service = StudentCalendarService(schedule_service, student_service, categories_repo)
    document_service = DocumentService(documents_repo, student_service, categories_repo, activity_log)
    tuition_service = TuitionService(
        tuition_repo,
        team_service,
        students_repo,
        activity_log,
        calculator=StandardTuitionCalculator(),
    )

    return Container(
        conn=conn,
        teams_repo=teams_repo,
        categories_repo=categories_repo,
        students_repo=students_repo,
        schedules_repo=schedules_repo,
        attendance_repo=attendance_repo,
        tuition_repo=tuition_repo,
        documents_repo=documents_repo,
        activity_repo=activity_repo,
        activity_log=activity_log,
        team_service=team_service,
        category_service=category_service,
        student_service=student_service,
        schedule_service=schedule_service,
        attendance_ledger=attendance_ledger,
        student_calendar_service=student_calendar_service,
        document_service=document_service,
        tuition_service=tuition_service,
    )
