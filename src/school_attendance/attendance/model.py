from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceStatus
from ..sessions.model import ClassSession


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: the status of one student at one session.

    At most one record exists per (student_id, session_id).
    """

    attendance_id: int
    student_id: int
    session_id: int
    status: AttendanceStatus
    notes: Optional[str]
    marked_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class AttendanceEntry:
    """One line of a mark request, before it reaches the store."""

    student_id: int
    status: AttendanceStatus
    notes: Optional[str] = None


@dataclass(frozen=True)
class ItemFailure:
    student_id: int
    kind: str
    message: str

    def to_dict(self) -> dict:
        return {"studentId": self.student_id, "kind": self.kind, "message": self.message}


@dataclass(frozen=True)
class BulkUpsertResult:
    records: list[AttendanceRecord] = field(default_factory=list)
    failures: list[ItemFailure] = field(default_factory=list)


@dataclass(frozen=True)
class QuickAttendanceResult:
    session: ClassSession
    records: list[AttendanceRecord]
