"""The only write path for attendance records."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Any, Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import coerce_status, optional_text, require_id
from ..core.constants import QUICK_SESSION_MINUTES
from ..core.exceptions import BatchRejectedError, ConflictError, DomainError, NotFoundError
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from ..students.repository import StudentRepository
from .model import AttendanceEntry, AttendanceRecord, BulkUpsertResult, ItemFailure, QuickAttendanceResult
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

# Quick sessions never run past midnight of the day they start.
END_OF_DAY = time(23, 59, 59)


class AttendanceLedger:
    """Upsert, bulk, quick and partial-update operations on attendance.

    Callers check access first; the ledger only enforces referential rules
    (the student and session exist, the student belongs to the session's class).
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        sessions: SessionRepository,
        students: StudentRepository,
        *,
        atomic_bulk: bool = False,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._sessions = sessions
        self._students = students
        self._atomic_bulk = bool(atomic_bulk)
        self._clock = clock

    def _require_session(self, session_id: int) -> ClassSession:
        session = self._sessions.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session", session_id)
        return session

    def _validate_entry(self, class_id: int, entry: Any) -> AttendanceEntry:
        student_id = require_id(entry.student_id, "Student")
        status = coerce_status(entry.status)
        student = self._students.get_by_id(student_id)
        if not student:
            raise NotFoundError("Student", student_id)
        if student.class_id != class_id:
            raise ConflictError("Student is not enrolled in this session's class")
        return AttendanceEntry(student_id=student_id, status=status, notes=optional_text(entry.notes))

    def _validate_all(self, class_id: int, entries: Sequence[Any]) -> tuple[list[AttendanceEntry], list[ItemFailure]]:
        valid: list[AttendanceEntry] = []
        failures: list[ItemFailure] = []
        for entry in entries:
            try:
                valid.append(self._validate_entry(class_id, entry))
            except DomainError as e:
                failures.append(ItemFailure(student_id=entry.student_id, kind=e.kind, message=e.message))
        return valid, failures

    def upsert_attendance(
        self,
        student_id: int,
        session_id: int,
        status: Any,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Create or overwrite the record for (student, session).

        ``notes=None`` clears any previous note.
        """
        session = self._require_session(session_id)
        entry = self._validate_entry(
            session.class_id, AttendanceEntry(student_id=student_id, status=status, notes=notes)
        )
        record = self._attendance.upsert(
            student_id=entry.student_id,
            session_id=session.session_id,
            status=entry.status,
            notes=entry.notes,
            now=self._clock(),
        )
        logger.info(
            "Attendance marked: id=%s student=%s session=%s status=%s",
            record.attendance_id,
            record.student_id,
            record.session_id,
            record.status.value,
        )
        return record

    def upsert_attendance_bulk(
        self,
        session_id: int,
        entries: Sequence[Any],
        *,
        atomic: Optional[bool] = None,
    ) -> BulkUpsertResult:
        session = self._require_session(session_id)
        atomic = self._atomic_bulk if atomic is None else bool(atomic)

        if atomic:
            valid, failures = self._validate_all(session.class_id, entries)
            if failures:
                logger.warning("Bulk attendance rejected: session=%s failures=%s", session_id, len(failures))
                raise BatchRejectedError(failures)
            records = list(self._attendance.upsert_many(session_id=session.session_id, entries=valid, now=self._clock()))
            logger.info("Bulk attendance written: session=%s records=%s", session_id, len(records))
            return BulkUpsertResult(records=records, failures=[])

        records: list[AttendanceRecord] = []
        failures: list[ItemFailure] = []
        for entry in entries:
            try:
                valid_entry = self._validate_entry(session.class_id, entry)
                records.append(
                    self._attendance.upsert(
                        student_id=valid_entry.student_id,
                        session_id=session.session_id,
                        status=valid_entry.status,
                        notes=valid_entry.notes,
                        now=self._clock(),
                    )
                )
            except DomainError as e:
                logger.warning(
                    "Bulk attendance item failed: session=%s student=%s kind=%s",
                    session_id,
                    entry.student_id,
                    e.kind,
                )
                failures.append(ItemFailure(student_id=entry.student_id, kind=e.kind, message=e.message))

        logger.info(
            "Bulk attendance written: session=%s records=%s failures=%s", session_id, len(records), len(failures)
        )
        return BulkUpsertResult(records=records, failures=failures)

    def quick_attendance(
        self,
        class_id: int,
        entries: Sequence[Any],
        topic: Optional[str] = None,
    ) -> QuickAttendanceResult:
        """Open a session starting now and record the whole roster for it.

        Any invalid entry rejects the call before the session is created.
        """
        valid, failures = self._validate_all(int(class_id), entries)
        seen: set[int] = set()
        for entry in valid:
            if entry.student_id in seen:
                failures.append(
                    ItemFailure(student_id=entry.student_id, kind=ConflictError.kind, message="Duplicate student in roster")
                )
            seen.add(entry.student_id)
        if failures:
            raise BatchRejectedError(failures)

        now = self._clock().replace(second=0, microsecond=0)
        start = now.time()
        end_at = now + timedelta(minutes=QUICK_SESSION_MINUTES)
        end = end_at.time() if end_at.date() == now.date() else END_OF_DAY
        session_id = self._sessions.create_session(
            class_id=int(class_id),
            session_date=now.date(),
            start_time=start,
            end_time=end,
            topic=optional_text(topic),
        )
        try:
            records = list(self._attendance.create_many(session_id=session_id, entries=valid, now=self._clock()))
        except Exception:
            logger.error("Quick attendance failed, removing session=%s", session_id)
            self._sessions.delete_by_id(session_id)
            raise

        logger.info("Quick attendance: class=%s session=%s records=%s", class_id, session_id, len(records))
        return QuickAttendanceResult(session=self._sessions.get_by_id(session_id), records=records)

    def update_attendance(
        self,
        attendance_id: int,
        *,
        status: Any = None,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Partial update: ``None`` keeps a field, an empty ``notes`` string clears it."""
        current = self._attendance.get_by_id(attendance_id)
        if not current:
            raise NotFoundError("Attendance record", attendance_id)

        new_status = current.status if status is None else coerce_status(status)
        new_notes = current.notes if notes is None else optional_text(notes)
        self._attendance.update_record(
            current.attendance_id, status=new_status, notes=new_notes, now=self._clock()
        )
        logger.info("Attendance updated: id=%s status=%s", current.attendance_id, new_status.value)
        return self._attendance.get_by_id(current.attendance_id)
