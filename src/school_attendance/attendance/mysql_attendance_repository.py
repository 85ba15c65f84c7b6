from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, integrity_as_conflict
from .model import AttendanceEntry, AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "attendance_id, student_id, session_id, status, notes, marked_at, updated_at"

# Relies on UNIQUE (student_id, session_id): concurrent marks for the same pair
# collapse into one row instead of racing a SELECT-then-INSERT.
_UPSERT_SQL = """
    INSERT INTO attendance(student_id, session_id, status, notes, marked_at, updated_at)
    VALUES(%s,%s,%s,%s,%s,%s)
    ON DUPLICATE KEY UPDATE status=VALUES(status), notes=VALUES(notes), updated_at=VALUES(updated_at)
"""


def _row_to_record(row: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(row["attendance_id"]),
        student_id=int(row["student_id"]),
        session_id=int(row["session_id"]),
        status=AttendanceStatus(row["status"]),
        notes=row.get("notes"),
        marked_at=row["marked_at"],
        updated_at=row["updated_at"],
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE attendance_id=%s", (int(attendance_id),))
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def get_for_pair(self, *, student_id: int, session_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE student_id=%s AND session_id=%s",
                (int(student_id), int(session_id)),
            )
            row = fetchone(cur)
            return _row_to_record(row) if row else None

    def upsert(
        self,
        *,
        student_id: int,
        session_id: int,
        status: AttendanceStatus,
        notes: Optional[str],
        now: datetime,
    ) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_UPSERT_SQL, (int(student_id), int(session_id), status.value, notes, now, now))
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE student_id=%s AND session_id=%s",
                (int(student_id), int(session_id)),
            )
            return _row_to_record(fetchone(cur))

    def upsert_many(
        self,
        *,
        session_id: int,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> Sequence[AttendanceRecord]:
        if not entries:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            for e in entries:
                cur.execute(_UPSERT_SQL, (int(e.student_id), int(session_id), e.status.value, e.notes, now, now))
            return self._select_pairs(cur, session_id=session_id, student_ids=[e.student_id for e in entries])

    def create_many(
        self,
        *,
        session_id: int,
        entries: Sequence[AttendanceEntry],
        now: datetime,
    ) -> Sequence[AttendanceRecord]:
        if not entries:
            return []
        with integrity_as_conflict("Attendance already recorded for this student and session"), db_cursor(
            self._conn_factory
        ) as (_, cur):
            for e in entries:
                cur.execute(
                    """
                    INSERT INTO attendance(student_id, session_id, status, notes, marked_at, updated_at)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    (int(e.student_id), int(session_id), e.status.value, e.notes, now, now),
                )
            return self._select_pairs(cur, session_id=session_id, student_ids=[e.student_id for e in entries])

    @staticmethod
    def _select_pairs(cur, *, session_id: int, student_ids: Sequence[int]) -> list[AttendanceRecord]:
        unique_ids = list(dict.fromkeys(int(s) for s in student_ids))
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance
            WHERE session_id=%s AND student_id IN ({in_clause(unique_ids)})
            """,
            (int(session_id), *unique_ids),
        )
        by_student = {int(r["student_id"]): _row_to_record(r) for r in fetchall(cur)}
        return [by_student[s] for s in unique_ids if s in by_student]

    def update_record(
        self,
        attendance_id: int,
        *,
        status: AttendanceStatus,
        notes: Optional[str],
        now: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance SET status=%s, notes=%s, updated_at=%s WHERE attendance_id=%s",
                (status.value, notes, now, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_for_sessions(self, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        if not session_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE session_id IN ({in_clause(session_ids)})
                ORDER BY session_id ASC, attendance_id ASC
                """,
                tuple(int(s) for s in session_ids),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_students(self, student_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        if not student_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE student_id IN ({in_clause(student_ids)})
                ORDER BY student_id ASC, attendance_id ASC
                """,
                tuple(int(s) for s in student_ids),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_recent_for_student(self, student_id: int, *, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance
                WHERE student_id=%s
                ORDER BY marked_at DESC, attendance_id DESC
                LIMIT %s
                """,
                (int(student_id), int(limit)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
