from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .access.guard import AccessGuard
from .attendance.ledger import AttendanceLedger
from .attendance.memory_attendance_repository import InMemoryAttendanceRepository
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .classes.memory_class_repository import InMemoryClassRepository
from .classes.mysql_class_repository import MySQLClassRepository
from .classes.repository import ClassRepository
from .classes.service import ClassService
from .common.datetime_utils import now_local
from .core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD
from .database.connection import DBConfig, DatabaseConnection
from .database.memory_store import InMemoryStore
from .reports.service import ReportService
from .sessions.memory_session_repository import InMemorySessionRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository
from .students.memory_student_repository import InMemoryStudentRepository
from .students.mysql_student_repository import MySQLStudentRepository
from .students.repository import StudentRepository
from .students.service import StudentService
from .users.memory_user_repository import InMemoryUserRepository
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository
from .users.service import AuthService, UserService


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]
    store: Optional[InMemoryStore]

    users_repo: UserRepository
    classes_repo: ClassRepository
    students_repo: StudentRepository
    sessions_repo: SessionRepository
    attendance_repo: AttendanceRepository

    guard: AccessGuard
    ledger: AttendanceLedger

    auth_service: AuthService
    user_service: UserService
    class_service: ClassService
    student_service: StudentService
    attendance_service: AttendanceService
    report_service: ReportService


def _wire(
    *,
    conn: Optional[DatabaseConnection],
    store: Optional[InMemoryStore],
    users_repo: UserRepository,
    classes_repo: ClassRepository,
    students_repo: StudentRepository,
    sessions_repo: SessionRepository,
    attendance_repo: AttendanceRepository,
    atomic_bulk: bool,
    low_attendance_threshold: float,
    clock: Callable[[], datetime],
) -> Container:
    guard = AccessGuard(classes_repo, sessions_repo, students_repo, attendance_repo)
    ledger = AttendanceLedger(attendance_repo, sessions_repo, students_repo, atomic_bulk=atomic_bulk, clock=clock)

    return Container(
        conn=conn,
        store=store,
        users_repo=users_repo,
        classes_repo=classes_repo,
        students_repo=students_repo,
        sessions_repo=sessions_repo,
        attendance_repo=attendance_repo,
        guard=guard,
        ledger=ledger,
        auth_service=AuthService(users_repo),
        user_service=UserService(users_repo),
        class_service=ClassService(classes_repo, students_repo, sessions_repo, attendance_repo, users_repo, guard),
        student_service=StudentService(students_repo, sessions_repo, attendance_repo, guard),
        attendance_service=AttendanceService(
            ledger, attendance_repo, sessions_repo, students_repo, classes_repo, guard, clock=clock
        ),
        report_service=ReportService(
            users_repo,
            classes_repo,
            students_repo,
            sessions_repo,
            attendance_repo,
            guard,
            low_attendance_threshold=low_attendance_threshold,
            clock=clock,
        ),
    )


def build_container(
    *,
    db_config: dict,
    atomic_bulk: bool = False,
    low_attendance_threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    return _wire(
        conn=conn,
        store=None,
        users_repo=MySQLUserRepository(conn),
        classes_repo=MySQLClassRepository(conn),
        students_repo=MySQLStudentRepository(conn),
        sessions_repo=MySQLSessionRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        atomic_bulk=atomic_bulk,
        low_attendance_threshold=low_attendance_threshold,
        clock=clock,
    )


def build_memory_container(
    *,
    store: Optional[InMemoryStore] = None,
    atomic_bulk: bool = False,
    low_attendance_threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    store = store or InMemoryStore(clock=clock)
    return _wire(
        conn=None,
        store=store,
        users_repo=InMemoryUserRepository(store),
        classes_repo=InMemoryClassRepository(store),
        students_repo=InMemoryStudentRepository(store),
        sessions_repo=InMemorySessionRepository(store),
        attendance_repo=InMemoryAttendanceRepository(store),
        atomic_bulk=atomic_bulk,
        low_attendance_threshold=low_attendance_threshold,
        clock=clock,
    )
