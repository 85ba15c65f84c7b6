from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Student


class StudentRepository(Protocol):
    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_by_student_number(self, student_number: str) -> Optional[Student]:
        raise NotImplementedError

    def list_students(
        self,
        *,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Student]:
        """Ordered by last name then first name.

        ``search`` matches first name, last name or student number, case-insensitively.
        """

        raise NotImplementedError

    def count_by_class(self, class_ids: Sequence[int]) -> dict[int, int]:
        raise NotImplementedError

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
        raise NotImplementedError

    def update_student(self, student_id: int, **fields) -> bool:
        """Only the given fields are written; ``email``/``phone`` may be set to None."""

        raise NotImplementedError

    def delete_by_id(self, student_id: int) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
