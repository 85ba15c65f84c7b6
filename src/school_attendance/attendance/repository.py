from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceEntry, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_pair(self, *, student_id: int, session_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def upsert(
        self,
        *,
        student_id: int,
        session_id: int,
        status: AttendanceStatus,
        notes: Optional[str],
        now: datetime,
    ) -> AttendanceRecord:
        """Single atomic insert-or-update keyed by (student_id, session_id)."""

        raise NotImplementedError

    def upsert_many(
        self,
        *,
        session_id: int,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> Sequence[AttendanceRecord]:
        """Upsert every entry inside one transaction: all rows or none."""

        raise NotImplementedError

    def create_many(
        self,
        *,
        session_id: int,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> Sequence[AttendanceRecord]:
        """Insert only; a pair that already exists is a ConflictError."""

        raise NotImplementedError

    def update_record(
        self,
        attendance_id: int,
        *,
        status: AttendanceStatus,
        notes: Optional[str],
        now: datetime,
    ) -> bool:
        raise NotImplementedError

    def list_for_sessions(self, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_students(self, student_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_recent_for_student(self, student_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        """Most recently marked first."""

        raise NotImplementedError
