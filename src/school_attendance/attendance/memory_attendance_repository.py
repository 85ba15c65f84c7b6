from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..core.exceptions import ConflictError
from ..database.memory_store import InMemoryStore
from .model import AttendanceEntry, AttendanceRecord
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        return self._store.attendance.get(int(attendance_id))

    def get_for_pair(self, *, student_id: int, session_id: int) -> Optional[AttendanceRecord]:
        return next(
            (
                a
                for a in self._store.attendance.values()
                if a.student_id == int(student_id) and a.session_id == int(session_id)
            ),
            None,
        )

    def _check_refs(self, db: InMemoryStore, student_id: int, session_id: int) -> None:
        if int(student_id) not in db.students or int(session_id) not in db.sessions:
            raise ConflictError("Student or session does not exist")

    def _write(self, db: InMemoryStore, student_id: int, session_id: int, status, notes, now) -> AttendanceRecord:
        self._check_refs(db, student_id, session_id)
        current = self.get_for_pair(student_id=student_id, session_id=session_id)
        if current:
            record = replace(current, status=status, notes=notes, updated_at=now)
        else:
            record = AttendanceRecord(
                attendance_id=db.next_id("attendance"),
                student_id=int(student_id),
                session_id=int(session_id),
                status=status,
                notes=notes,
                marked_at=now,
                updated_at=now,
            )
        db.attendance[record.attendance_id] = record
        return record

    def upsert(
        self,
        *,
        student_id: int,
        session_id: int,
        status: AttendanceStatus,
        notes: Optional[str],
        now: datetime,
    ) -> AttendanceRecord:
        with self._store.transaction() as db:
            return self._write(db, student_id, session_id, status, notes, now)

    def upsert_many(
        self,
        *,
        session_id: int,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> Sequence[AttendanceRecord]:
        with self._store.transaction() as db:
            written = {}
            for e in entries:
                written[int(e.student_id)] = self._write(db, e.student_id, session_id, e.status, e.notes, now)
            return list(written.values())

    def create_many(
        self,
        *,
        session_id: int,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> Sequence[AttendanceRecord]:
        with self._store.transaction() as db:
            out = []
            for e in entries:
                if self.get_for_pair(student_id=e.student_id, session_id=session_id):
                    raise ConflictError("Attendance already recorded for this student and session")
                out.append(self._write(db, e.student_id, session_id, e.status, e.notes, now))
            return out

    def update_record(
        self,
        attendance_id: int,
        *,
        status: AttendanceStatus,
        notes: Optional[str],
        now: datetime,
    ) -> bool:
        with self._store.transaction() as db:
            current = db.attendance.get(int(attendance_id))
            if not current:
                return False
            db.attendance[current.attendance_id] = replace(current, status=status, notes=notes, updated_at=now)
            return True

    def list_for_sessions(self, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        wanted = {int(s) for s in session_ids}
        rows = [a for a in self._store.attendance.values() if a.session_id in wanted]
        return sorted(rows, key=lambda a: (a.session_id, a.attendance_id))

    def list_for_students(self, student_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        wanted = {int(s) for s in student_ids}
        rows = [a for a in self._store.attendance.values() if a.student_id in wanted]
        return sorted(rows, key=lambda a: (a.student_id, a.attendance_id))

    def list_recent_for_student(self, student_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        rows = [a for a in self._store.attendance.values() if a.student_id == int(student_id)]
        rows.sort(key=lambda a: (a.marked_at, a.attendance_id), reverse=True)
        return rows[:limit]
