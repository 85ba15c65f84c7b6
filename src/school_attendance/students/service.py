from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

from ..access.guard import AccessGuard
from ..access.policy import scope_teacher_id
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..classes.model import SchoolClass
from ..common.validators import optional_email, optional_text, require_id, require_non_empty
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ConflictError, DomainError, ValidationError
from ..reports.aggregation import StudentStats, student_stats
from ..sessions.model import ClassSession
from ..sessions.repository import SessionRepository
from ..users.model import Actor
from .model import Student
from .repository import StudentRepository

logger = logging.getLogger(__name__)

# CSV header aliases, first match wins.
IMPORT_COLUMNS = {
    "student_number": ("studentId", "student_id", "id"),
    "first_name": ("firstName", "first_name", "prenom"),
    "last_name": ("lastName", "last_name", "nom"),
    "email": ("email",),
    "phone": ("phone", "telephone"),
}


@dataclass(frozen=True)
class HistoryEntry:
    record: AttendanceRecord
    session: Optional[ClassSession]


@dataclass(frozen=True)
class StudentProfile:
    student: Student
    school_class: SchoolClass
    history: list[HistoryEntry]
    stats: StudentStats


@dataclass
class ImportResult:
    created: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)


def _pick(row: Mapping[str, Any], aliases) -> Optional[str]:
    for name in aliases:
        value = row.get(name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


class StudentService:
    def __init__(
        self,
        students: StudentRepository,
        sessions: SessionRepository,
        attendance: AttendanceRepository,
        guard: AccessGuard,
    ):
        self._students = students
        self._sessions = sessions
        self._attendance = attendance
        self._guard = guard

    def list_students(
        self,
        actor: Actor,
        *,
        class_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> list[tuple[Student, SchoolClass]]:
        if class_id is not None:
            self._guard.class_for(actor, class_id)
        students = self._students.list_students(
            class_id=class_id,
            teacher_id=scope_teacher_id(actor),
            search=optional_text(search),
        )
        classes: dict[int, SchoolClass] = {}
        out = []
        for s in students:
            if s.class_id not in classes:
                classes[s.class_id] = self._guard.class_for(actor, s.class_id)
            out.append((s, classes[s.class_id]))
        return out

    def get_profile(self, actor: Actor, student_id: int) -> StudentProfile:
        student, school_class = self._guard.student_for(actor, student_id)
        recent = self._attendance.list_recent_for_student(student.student_id, limit=DEFAULT_HISTORY_LIMIT)
        sessions = {r.session_id: self._sessions.get_by_id(r.session_id) for r in recent}
        return StudentProfile(
            student=student,
            school_class=school_class,
            history=[HistoryEntry(record=r, session=sessions[r.session_id]) for r in recent],
            stats=student_stats(self._attendance.list_for_students([student.student_id])),
        )

    def create_student(
        self,
        actor: Actor,
        *,
        first_name: str,
        last_name: str,
        student_number: str,
        class_id: Any,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Student:
        school_class = self._guard.class_for(actor, require_id(class_id, "Class"))
        first_name = require_non_empty(first_name, "First name")
        last_name = require_non_empty(last_name, "Last name")
        student_number = require_non_empty(student_number, "Student ID")

        if self._students.get_by_student_number(student_number):
            raise ConflictError("Student ID already exists")

        student_id = self._students.create_student(
            first_name=first_name,
            last_name=last_name,
            student_number=student_number,
            class_id=school_class.class_id,
            email=optional_email(email),
            phone=optional_text(phone),
        )
        logger.info("Student created: id=%s class=%s", student_id, school_class.class_id)
        return self._students.get_by_id(student_id)

    def update_student(self, actor: Actor, student_id: int, changes: Mapping[str, Any]) -> Student:
        """Partial update.

        Keys missing from ``changes`` (or ``None`` for the required fields)
        are left alone; ``email``/``phone`` set to an empty string are cleared.
        A ``class_id`` change moves the student and needs access to both classes.
        """
        student, _ = self._guard.student_for(actor, student_id)
        fields: dict[str, Any] = {}

        for key, label in (("first_name", "First name"), ("last_name", "Last name"), ("student_number", "Student ID")):
            if changes.get(key) is not None:
                fields[key] = require_non_empty(changes[key], label)
        if "email" in changes:
            fields["email"] = optional_email(changes["email"])
        if "phone" in changes:
            fields["phone"] = optional_text(changes["phone"])

        if changes.get("class_id") is not None:
            target = self._guard.class_for(actor, require_id(changes["class_id"], "Class"))
            fields["class_id"] = target.class_id

        number = fields.get("student_number")
        if number and number != student.student_number and self._students.get_by_student_number(number):
            raise ConflictError("Student ID already exists")

        if fields:
            self._students.update_student(student.student_id, **fields)
        return self._students.get_by_id(student.student_id)

    def delete_student(self, actor: Actor, student_id: int) -> None:
        student, _ = self._guard.student_for(actor, student_id)
        self._students.delete_by_id(student.student_id)
        logger.info("Student deleted: id=%s by=%s", student.student_id, actor.user_id)

    def import_csv(self, actor: Actor, class_id: Any, content: Union[bytes, str]) -> ImportResult:
        if class_id is None or class_id == "":
            raise ValidationError("Class ID required")
        school_class = self._guard.class_for(actor, require_id(class_id, "Class"))

        if isinstance(content, bytes):
            try:
                text = content.decode("utf-8-sig")
            except UnicodeDecodeError:
                raise ValidationError("CSV file must be UTF-8 encoded") from None
        else:
            text = content
        reader = csv.DictReader(io.StringIO(text))
        reader.fieldnames = [h.strip() for h in (reader.fieldnames or [])]

        result = ImportResult()
        for row in reader:
            if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
                continue
            values = {key: _pick(row, aliases) for key, aliases in IMPORT_COLUMNS.items()}
            if not values["student_number"] or not values["first_name"] or not values["last_name"]:
                result.errors.append(f"Missing required fields for row: {json.dumps(row, ensure_ascii=False)}")
                result.skipped += 1
                continue
            if self._students.get_by_student_number(values["student_number"]):
                result.skipped += 1
                continue
            try:
                self._students.create_student(
                    first_name=values["first_name"],
                    last_name=values["last_name"],
                    student_number=values["student_number"],
                    class_id=school_class.class_id,
                    email=optional_email(values["email"]),
                    phone=values["phone"],
                )
            except DomainError as e:
                result.errors.append(e.message)
                result.skipped += 1
                continue
            result.created += 1

        logger.info(
            "Student import: class=%s created=%s skipped=%s", school_class.class_id, result.created, result.skipped
        )
        return result
