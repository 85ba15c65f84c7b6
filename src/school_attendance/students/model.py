from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Student:
    """Domain entity: Student.

    ``student_number`` is the external identifier printed on school records
    (unique system-wide); ``student_id`` is the internal key.
    """

    student_id: int
    first_name: str
    last_name: str
    student_number: str
    class_id: int
    email: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.last_name, self.first_name)
