from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..access.guard import AccessGuard
from ..access.policy import ensure_admin, scope_teacher_id
from ..attendance.repository import AttendanceRepository
from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..common.validators import parse_threshold
from ..core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD, WEEKLY_TREND_DAYS
from ..core.exceptions import ValidationError
from ..sessions.repository import SessionRepository
from ..students.repository import StudentRepository
from ..users.model import Actor
from ..users.repository import UserRepository
from .aggregation import (
    DailySummary,
    LowAttendanceAlert,
    StudentReportRow,
    TrendPoint,
    attendance_matrix,
    daily_summary,
    low_attendance_alerts,
    per_student_report,
    weekly_trend,
)
from .export import ExportFile, export_matrix


@dataclass(frozen=True)
class ClassReport:
    school_class: SchoolClass
    start: Optional[date]
    end: Optional[date]
    total_sessions: int
    rows: list[StudentReportRow]


@dataclass(frozen=True)
class AdminStats:
    users: int
    students: int
    classes: int
    sessions: int
    today: DailySummary
    weekly_trend: list[TrendPoint]


def _check_window(start: Optional[date], end: Optional[date]) -> None:
    if start and end and start > end:
        raise ValidationError("startDate must not be after endDate")


class ReportService:
    """Use case: read-only reports built on the aggregation functions."""

    def __init__(
        self,
        users: UserRepository,
        classes: ClassRepository,
        students: StudentRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        guard: AccessGuard,
        *,
        low_attendance_threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
        clock: Callable[[], datetime] = now_local,
    ):
        self._users = users
        self._classes = classes
        self._students = students
        self._sessions = sessions
        self._attendance = attendance
        self._guard = guard
        self._threshold = low_attendance_threshold
        self._clock = clock

    def class_report(
        self,
        actor: Actor,
        class_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> ClassReport:
        _check_window(start, end)
        school_class = self._guard.class_for(actor, class_id)
        students = self._students.list_students(class_id=school_class.class_id)
        sessions = self._sessions.list_for_class(school_class.class_id, start=start, end=end)
        records = self._attendance.list_for_sessions([s.session_id for s in sessions])
        return ClassReport(
            school_class=school_class,
            start=start,
            end=end,
            total_sessions=len(sessions),
            rows=per_student_report(students, sessions, records, start, end),
        )

    def alerts(self, actor: Actor, threshold=None) -> tuple[list[LowAttendanceAlert], float]:
        threshold = parse_threshold(threshold, self._threshold)
        teacher_id = scope_teacher_id(actor)
        students = self._students.list_students(teacher_id=teacher_id)
        classes = self._classes.list_classes(teacher_id=teacher_id)
        records = self._attendance.list_for_students([s.student_id for s in students])
        return low_attendance_alerts(students, records, classes, threshold), threshold

    def admin_stats(self, actor: Actor) -> AdminStats:
        ensure_admin(actor)
        today = self._clock().date()

        todays_sessions = self._sessions.list_between(start=today, end=today)
        todays_records = self._attendance.list_for_sessions([s.session_id for s in todays_sessions])

        since = today - timedelta(days=WEEKLY_TREND_DAYS)
        week_sessions = self._sessions.list_between(start=since, end=today)
        week_records = self._attendance.list_for_sessions([s.session_id for s in week_sessions])

        return AdminStats(
            users=self._users.count(),
            students=self._students.count(),
            classes=self._classes.count(),
            sessions=self._sessions.count(),
            today=daily_summary(todays_sessions, todays_records),
            weekly_trend=weekly_trend(week_sessions, week_records, since),
        )

    def export(
        self,
        actor: Actor,
        class_id: int,
        *,
        fmt: str = "xlsx",
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> ExportFile:
        _check_window(start, end)
        school_class = self._guard.class_for(actor, class_id)
        students = self._students.list_students(class_id=school_class.class_id)
        sessions = self._sessions.list_for_class(school_class.class_id, start=start, end=end, newest_first=False)
        records = self._attendance.list_for_sessions([s.session_id for s in sessions])
        matrix = attendance_matrix(students, sessions, records)
        return export_matrix(matrix, class_code=school_class.code, fmt=fmt, today=self._clock().date())
