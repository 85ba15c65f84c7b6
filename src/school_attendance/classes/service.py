from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from ..access.guard import AccessGuard
from ..access.policy import scope_teacher_id
from ..attendance.repository import AttendanceRepository
from ..common.validators import require_non_empty
from ..core.constants import RECENT_SESSIONS_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..reports.aggregation import attendance_rate, status_counts
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from ..users.model import Actor, User
from ..users.repository import UserRepository
from .model import SchoolClass
from .repository import ClassRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassSummary:
    school_class: SchoolClass
    teacher: Optional[User]
    student_count: int
    session_count: int


@dataclass(frozen=True)
class SessionSummary:
    session: ClassSession
    attendance_count: int


@dataclass(frozen=True)
class ClassDetail:
    school_class: SchoolClass
    teacher: Optional[User]
    students: list[Student]
    recent_sessions: list[SessionSummary]
    status_counts: dict[AttendanceStatus, int]
    attendance_rate: int


class ClassService:
    def __init__(
        self,
        classes: ClassRepository,
        students: StudentRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        users: UserRepository,
        guard: AccessGuard,
    ):
        self._classes = classes
        self._students = students
        self._sessions = sessions
        self._attendance = attendance
        self._users = users
        self._guard = guard

    def list_classes(self, actor: Actor) -> list[ClassSummary]:
        classes = self._classes.list_classes(teacher_id=scope_teacher_id(actor))
        ids = [c.class_id for c in classes]
        student_counts = self._students.count_by_class(ids)
        session_counts = self._sessions.count_by_class(ids)
        teachers: dict[int, Optional[User]] = {}
        for c in classes:
            if c.teacher_id not in teachers:
                teachers[c.teacher_id] = self._users.get_by_id(c.teacher_id)
        return [
            ClassSummary(
                school_class=c,
                teacher=teachers[c.teacher_id],
                student_count=student_counts.get(c.class_id, 0),
                session_count=session_counts.get(c.class_id, 0),
            )
            for c in classes
        ]

    def get_detail(self, actor: Actor, class_id: int) -> ClassDetail:
        school_class = self._guard.class_for(actor, class_id)

        students = sorted(self._students.list_students(class_id=school_class.class_id), key=lambda s: s.sort_key)
        all_sessions = self._sessions.list_for_class(school_class.class_id)
        records = self._attendance.list_for_sessions([s.session_id for s in all_sessions])

        per_session = Counter(r.session_id for r in records)
        recent = [
            SessionSummary(session=s, attendance_count=per_session.get(s.session_id, 0))
            for s in all_sessions[:RECENT_SESSIONS_LIMIT]
        ]
        counts = status_counts(records)
        return ClassDetail(
            school_class=school_class,
            teacher=self._users.get_by_id(school_class.teacher_id),
            students=students,
            recent_sessions=recent,
            status_counts=counts,
            attendance_rate=attendance_rate(counts),
        )

    def create_class(self, actor: Actor, *, name: str, code: str) -> SchoolClass:
        name = require_non_empty(name, "Name")
        code = require_non_empty(code, "Code")
        if self._classes.get_by_code(code):
            raise ConflictError("Class code already exists")

        class_id = self._classes.create_class(name=name, code=code, teacher_id=actor.user_id)
        logger.info("Class created: id=%s code=%s owner=%s", class_id, code, actor.user_id)
        return self._classes.get_by_id(class_id)

    def update_class(
        self,
        actor: Actor,
        class_id: int,
        *,
        name: Optional[str] = None,
        code: Optional[str] = None,
    ) -> SchoolClass:
        school_class = self._guard.class_for(actor, class_id)
        name = require_non_empty(name, "Name") if name is not None else None
        code = require_non_empty(code, "Code") if code is not None else None

        if code is not None and code != school_class.code and self._classes.get_by_code(code):
            raise ConflictError("Class code already exists")

        self._classes.update_class(school_class.class_id, name=name, code=code)
        return self._classes.get_by_id(school_class.class_id)

    def delete_class(self, actor: Actor, class_id: int) -> None:
        school_class = self._guard.class_for(actor, class_id)
        self._classes.delete_by_id(school_class.class_id)
        logger.info("Class deleted: id=%s by=%s", school_class.class_id, actor.user_id)
