from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from ..attendance.model import AttendanceRecord
from ..classes.model import SchoolClass
from ..common.datetime_utils import now_local
from ..sessions.model import ClassSession
from ..students.model import Student
from ..users.model import User


class InMemoryStore:
    """Process-local stand-in for the MySQL schema.

    Each instance owns its tables; nothing is shared between instances, so a
    test that builds its own store never sees another test's rows. The same
    uniqueness and cascade rules as ``database/schema.sql`` are enforced by
    the ``memory_*_repository`` classes through this object.
    """

    def __init__(self, *, clock: Callable = now_local):
        self.clock = clock
        self.users: dict[int, User] = {}
        self.classes: dict[int, SchoolClass] = {}
        self.students: dict[int, Student] = {}
        self.sessions: dict[int, ClassSession] = {}
        self.attendance: dict[int, AttendanceRecord] = {}
        self._lock = threading.RLock()
        self._ids = {name: itertools.count(1) for name in ("users", "classes", "students", "sessions", "attendance")}

    @contextmanager
    def transaction(self) -> Iterator["InMemoryStore"]:
        """Serialize a read-modify-write; tables are restored if the block raises."""
        with self._lock:
            snapshot = {
                "users": dict(self.users),
                "classes": dict(self.classes),
                "students": dict(self.students),
                "sessions": dict(self.sessions),
                "attendance": dict(self.attendance),
            }
            try:
                yield self
            except Exception:
                for name, rows in snapshot.items():
                    setattr(self, name, rows)
                raise

    def next_id(self, table: str) -> int:
        return next(self._ids[table])

    # Cascades (mirrors ON DELETE CASCADE in schema.sql)

    def drop_attendance_where(self, predicate: Callable[[AttendanceRecord], bool]) -> None:
        for attendance_id in [a.attendance_id for a in self.attendance.values() if predicate(a)]:
            del self.attendance[attendance_id]

    def drop_student(self, student_id: int) -> None:
        self.drop_attendance_where(lambda a: a.student_id == student_id)
        del self.students[student_id]

    def drop_session(self, session_id: int) -> None:
        self.drop_attendance_where(lambda a: a.session_id == session_id)
        del self.sessions[session_id]

    def drop_class(self, class_id: int) -> None:
        for student_id in [s.student_id for s in self.students.values() if s.class_id == class_id]:
            self.drop_student(student_id)
        for session_id in [s.session_id for s in self.sessions.values() if s.class_id == class_id]:
            self.drop_session(session_id)
        del self.classes[class_id]
