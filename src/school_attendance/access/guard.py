from __future__ import annotations

import logging

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..classes.model import SchoolClass
from ..classes.repository import ClassRepository
from ..core.exceptions import AuthorizationError, NotFoundError, OwnershipMismatchError
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from ..students.model import Student
from ..students.repository import StudentRepository
from ..users.model import Actor
from .policy import can_access, chain_owner

logger = logging.getLogger(__name__)


class AccessGuard:
    """Loads a resource, walks it up to its owning class and checks the actor against it.

    Missing resources raise ``NotFoundError`` before any access decision is made.
    """

    def __init__(
        self,
        classes: ClassRepository,
        sessions: SessionRepository,
        students: StudentRepository,
        attendance: AttendanceRepository,
    ):
        self._classes = classes
        self._sessions = sessions
        self._students = students
        self._attendance = attendance

    def _load_class(self, class_id: int) -> SchoolClass:
        school_class = self._classes.get_by_id(class_id)
        if not school_class:
            raise NotFoundError("Class", class_id)
        return school_class

    def _check(self, actor: Actor, school_class: SchoolClass, what: str) -> None:
        if not can_access(actor, school_class.teacher_id):
            logger.warning("Access denied: user=%s %s class=%s", actor.user_id, what, school_class.class_id)
            raise AuthorizationError()

    def class_for(self, actor: Actor, class_id: int) -> SchoolClass:
        school_class = self._load_class(class_id)
        self._check(actor, school_class, "class")
        return school_class

    def session_for(self, actor: Actor, session_id: int) -> tuple[ClassSession, SchoolClass]:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session", session_id)
        school_class = self._load_class(session.class_id)
        self._check(actor, school_class, f"session={session_id}")
        return session, school_class

    def student_for(self, actor: Actor, student_id: int) -> tuple[Student, SchoolClass]:
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student", student_id)
        school_class = self._load_class(student.class_id)
        self._check(actor, school_class, f"student={student_id}")
        return student, school_class

    def attendance_for(self, actor: Actor, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(attendance_id)
        if not record:
            raise NotFoundError("Attendance record", attendance_id)

        session = self._sessions.get_by_id(record.session_id)
        student = self._students.get_by_id(record.student_id)
        if not session or not student:
            raise NotFoundError("Attendance record", attendance_id)

        session_class = self._load_class(session.class_id)
        student_class = self._load_class(student.class_id)
        try:
            owner_id = chain_owner(session_class.teacher_id, student_class.teacher_id)
        except OwnershipMismatchError:
            logger.error(
                "Ownership chain mismatch for attendance=%s: session class=%s (owner %s), student class=%s (owner %s)",
                attendance_id,
                session_class.class_id,
                session_class.teacher_id,
                student_class.class_id,
                student_class.teacher_id,
            )
            raise

        if not can_access(actor, owner_id):
            logger.warning("Access denied: user=%s attendance=%s", actor.user_id, attendance_id)
            raise AuthorizationError()
        return record
