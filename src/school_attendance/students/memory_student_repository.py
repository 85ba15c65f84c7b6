from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from ..core.exceptions import ConflictError
from ..database.memory_store import InMemoryStore
from .model import Student
from .repository import StudentRepository

_UPDATABLE = ("first_name", "last_name", "student_number", "class_id", "email", "phone")


class InMemoryStudentRepository(StudentRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, student_id: int) -> Optional[Student]:
        return self._store.students.get(int(student_id))

    def get_by_student_number(self, student_number: str) -> Optional[Student]:
        return next((s for s in self._store.students.values() if s.student_number == student_number), None)

    def list_students(
        self,
        *,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Student]:
        needle = search.lower() if search else None
        out: list[Student] = []
        for s in self._store.students.values():
            if class_id is not None and s.class_id != int(class_id):
                continue
            if teacher_id is not None:
                owner = self._store.classes.get(s.class_id)
                if not owner or owner.teacher_id != int(teacher_id):
                    continue
            if needle and not any(needle in v.lower() for v in (s.first_name, s.last_name, s.student_number)):
                continue
            out.append(s)
        return sorted(out, key=lambda s: (s.last_name, s.first_name, s.student_id))

    def count_by_class(self, class_ids: Sequence[int]) -> dict[int, int]:
        counts = {int(c): 0 for c in class_ids}
        for s in self._store.students.values():
            if s.class_id in counts:
                counts[s.class_id] += 1
        return counts

    def create_student(
        self,
        *,
        first_name: str,
        last_name: str,
        student_number: str,
        class_id: int,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        with self._store.transaction() as db:
            if self.get_by_student_number(student_number):
                raise ConflictError("Student ID already exists")
            if int(class_id) not in db.classes:
                raise ConflictError("Class does not exist")
            student_id = db.next_id("students")
            db.students[student_id] = Student(
                student_id=student_id,
                first_name=first_name,
                last_name=last_name,
                student_number=student_number,
                class_id=int(class_id),
                email=email,
                phone=phone,
                created_at=db.clock(),
            )
            return student_id

    def update_student(self, student_id: int, **fields) -> bool:
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(f"Unknown student fields: {sorted(unknown)}")

        with self._store.transaction() as db:
            current = db.students.get(int(student_id))
            if not current:
                return False
            number = fields.get("student_number")
            if number is not None:
                other = self.get_by_student_number(number)
                if other and other.student_id != current.student_id:
                    raise ConflictError("Student ID already exists")
            if "class_id" in fields and int(fields["class_id"]) not in db.classes:
                raise ConflictError("Class does not exist")
            db.students[current.student_id] = replace(current, **fields)
            return True

    def delete_by_id(self, student_id: int) -> bool:
        with self._store.transaction() as db:
            if int(student_id) not in db.students:
                return False
            db.drop_student(int(student_id))
            return True

    def count(self) -> int:
        return len(self._store.students)
