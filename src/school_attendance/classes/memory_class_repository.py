from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from ..core.exceptions import ConflictError
from ..database.memory_store import InMemoryStore
from .model import SchoolClass
from .repository import ClassRepository


class InMemoryClassRepository(ClassRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        return self._store.classes.get(int(class_id))

    def get_by_code(self, code: str) -> Optional[SchoolClass]:
        return next((c for c in self._store.classes.values() if c.code == code), None)

    def list_classes(self, *, teacher_id: Optional[int] = None) -> Sequence[SchoolClass]:
        rows = [c for c in self._store.classes.values() if teacher_id is None or c.teacher_id == int(teacher_id)]
        return sorted(rows, key=lambda c: (c.name, c.class_id))

    def list_by_ids(self, class_ids: Sequence[int]) -> Sequence[SchoolClass]:
        wanted = {int(c) for c in class_ids}
        return [c for c in self._store.classes.values() if c.class_id in wanted]

    def count_for_teacher(self, teacher_id: int) -> int:
        return sum(1 for c in self._store.classes.values() if c.teacher_id == int(teacher_id))

    def create_class(self, *, name: str, code: str, teacher_id: int) -> int:
        with self._store.transaction() as db:
            if self.get_by_code(code):
                raise ConflictError("Class code already exists")
            if int(teacher_id) not in db.users:
                raise ConflictError("Teacher does not exist")
            class_id = db.next_id("classes")
            db.classes[class_id] = SchoolClass(
                class_id=class_id,
                name=name,
                code=code,
                teacher_id=int(teacher_id),
                created_at=db.clock(),
            )
            return class_id

    def update_class(self, class_id: int, *, name: Optional[str] = None, code: Optional[str] = None) -> bool:
        with self._store.transaction() as db:
            current = db.classes.get(int(class_id))
            if not current:
                return False
            if code is not None:
                other = self.get_by_code(code)
                if other and other.class_id != current.class_id:
                    raise ConflictError("Class code already exists")
            db.classes[current.class_id] = replace(
                current,
                name=name if name is not None else current.name,
                code=code if code is not None else current.code,
            )
            return True

    def delete_by_id(self, class_id: int) -> bool:
        with self._store.transaction() as db:
            if int(class_id) not in db.classes:
                return False
            db.drop_class(int(class_id))
            return True

    def count(self) -> int:
        return len(self._store.classes)
