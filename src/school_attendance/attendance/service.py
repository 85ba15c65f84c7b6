from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Callable, Iterable, Optional

from ..access.guard import AccessGuard
from ..access.policy import scope_teacher_id
from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, parse_hhmm, require_id
from ..core.exceptions import ValidationError
from ..reports.aggregation import DailySummary, daily_summary
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from ..users.model import Actor
from .ledger import AttendanceLedger
from .model import AttendanceEntry, AttendanceRecord, BulkUpsertResult, QuickAttendanceResult
from .repository import AttendanceRepository


@dataclass(frozen=True)
class SessionAttendance:
    session: ClassSession
    records: list[AttendanceRecord]


@dataclass(frozen=True)
class RosterLine:
    student: Student
    attendance: Optional[AttendanceRecord]


@dataclass(frozen=True)
class SessionRoster:
    session: ClassSession
    school_class: SchoolClass
    lines: list[RosterLine]


@dataclass(frozen=True)
class TodayView:
    day: date
    sessions: list[tuple[ClassSession, Optional[SchoolClass], list[AttendanceRecord]]]
    summary: DailySummary


def entries_from_payload(items: Any) -> list[AttendanceEntry]:
    """``[{"studentId", "status", "notes"?}, ...]`` -> entries; values are validated by the ledger."""
    if not isinstance(items, list):
        raise ValidationError("attendances must be a list")
    entries = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each attendance entry must be an object")
        entries.append(
            AttendanceEntry(student_id=item.get("studentId"), status=item.get("status"), notes=item.get("notes"))
        )
    return entries


class AttendanceService:
    """Use case: sessions, marking and the daily view.

    Access is checked here; every write goes through the ledger.
    """

    def __init__(
        self,
        ledger: AttendanceLedger,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        students: StudentRepository,
        classes: ClassRepository,
        guard: AccessGuard,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._ledger = ledger
        self._attendance = attendance
        self._sessions = sessions
        self._students = students
        self._classes = classes
        self._guard = guard
        self._clock = clock

    def _by_session(self, sessions: Iterable[ClassSession]) -> dict[int, list[AttendanceRecord]]:
        sessions = list(sessions)
        grouped: dict[int, list[AttendanceRecord]] = {s.session_id: [] for s in sessions}
        for r in self._attendance.list_for_sessions([s.session_id for s in sessions]):
            grouped[r.session_id].append(r)
        return grouped

    # Sessions

    def list_sessions(self, actor: Actor, class_id: Any, *, day: Optional[date] = None) -> list[SessionAttendance]:
        if class_id is None or class_id == "":
            raise ValidationError("Class ID required")
        school_class = self._guard.class_for(actor, require_id(class_id, "Class"))
        sessions = self._sessions.list_for_class(school_class.class_id, start=day, end=day)
        grouped = self._by_session(sessions)
        return [SessionAttendance(session=s, records=grouped[s.session_id]) for s in sessions]

    def create_session(
        self,
        actor: Actor,
        *,
        class_id: Any,
        session_date: date,
        start_time: Any,
        end_time: Any,
        topic: Optional[str] = None,
    ) -> ClassSession:
        school_class = self._guard.class_for(actor, require_id(class_id, "Class"))
        start: time = parse_hhmm(start_time, "Start time")
        end: time = parse_hhmm(end_time, "End time")
        if end <= start:
            raise ValidationError("End time must be after start time")

        session_id = self._sessions.create_session(
            class_id=school_class.class_id,
            session_date=session_date,
            start_time=start,
            end_time=end,
            topic=optional_text(topic),
        )
        return self._sessions.get_by_id(session_id)

    def roster(self, actor: Actor, session_id: int) -> SessionRoster:
        session, school_class = self._guard.session_for(actor, session_id)
        students = sorted(self._students.list_students(class_id=school_class.class_id), key=lambda s: s.sort_key)
        by_student = {r.student_id: r for r in self._attendance.list_for_sessions([session.session_id])}
        return SessionRoster(
            session=session,
            school_class=school_class,
            lines=[RosterLine(student=s, attendance=by_student.get(s.student_id)) for s in students],
        )

    # Marking

    def mark(self, actor: Actor, *, session_id: Any, student_id: Any, status: Any, notes: Optional[str] = None) -> AttendanceRecord:
        session, _ = self._guard.session_for(actor, require_id(session_id, "Session"))
        return self._ledger.upsert_attendance(require_id(student_id, "Student"), session.session_id, status, notes)

    def mark_bulk(self, actor: Actor, *, session_id: Any, items: Any, atomic: Optional[bool] = None) -> BulkUpsertResult:
        session, _ = self._guard.session_for(actor, require_id(session_id, "Session"))
        return self._ledger.upsert_attendance_bulk(session.session_id, entries_from_payload(items), atomic=atomic)

    def quick(self, actor: Actor, *, class_id: Any, items: Any, topic: Optional[str] = None) -> QuickAttendanceResult:
        school_class = self._guard.class_for(actor, require_id(class_id, "Class"))
        return self._ledger.quick_attendance(school_class.class_id, entries_from_payload(items), topic)

    def update(self, actor: Actor, attendance_id: int, *, status: Any = None, notes: Optional[str] = None) -> AttendanceRecord:
        record = self._guard.attendance_for(actor, attendance_id)
        return self._ledger.update_attendance(record.attendance_id, status=status, notes=notes)

    # Daily view

    def today(self, actor: Actor) -> TodayView:
        day = self._clock().date()
        sessions = self._sessions.list_between(start=day, end=day, teacher_id=scope_teacher_id(actor))
        grouped = self._by_session(sessions)
        classes = {c.class_id: c for c in self._classes.list_by_ids(sorted({s.class_id for s in sessions}))}
        records = [r for rows in grouped.values() for r in rows]
        return TodayView(
            day=day,
            sessions=[(s, classes.get(s.class_id), grouped[s.session_id]) for s in sessions],
            summary=daily_summary(sessions, records),
        )
