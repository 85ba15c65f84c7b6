from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import SchoolClass


class ClassRepository(Protocol):
    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[SchoolClass]:
        raise NotImplementedError

    def list_classes(self, *, teacher_id: Optional[int] = None) -> Sequence[SchoolClass]:
        """Ordered by name; ``teacher_id=None`` means every class."""

        raise NotImplementedError

    def list_by_ids(self, class_ids: Sequence[int]) -> Sequence[SchoolClass]:
        raise NotImplementedError

    def count_for_teacher(self, teacher_id: int) -> int:
        raise NotImplementedError

    def create_class(self, *, name: str, code: str, teacher_id: int) -> int:
        raise NotImplementedError

    def update_class(self, class_id: int, *, name: Optional[str] = None, code: Optional[str] = None) -> bool:
        raise NotImplementedError

    def delete_by_id(self, class_id: int) -> bool:
        """Cascades to the class's students, sessions and their attendance."""

        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
