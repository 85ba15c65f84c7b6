from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from ..common.datetime_utils import in_range
from ..core.exceptions import ConflictError
from ..database.memory_store import InMemoryStore
from .model import ClassSession
from .repository import SessionRepository


def _order_key(s: ClassSession):
    return (s.session_date, s.start_time, s.session_id)


class InMemorySessionRepository(SessionRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        return self._store.sessions.get(int(session_id))

    def list_for_class(
        self,
        class_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> Sequence[ClassSession]:
        rows = [
            s
            for s in self._store.sessions.values()
            if s.class_id == int(class_id) and in_range(s.session_date, start, end)
        ]
        rows.sort(key=_order_key, reverse=newest_first)
        return rows[:limit] if limit is not None else rows

    def list_between(
        self,
        *,
        start: date,
        end: date,
        teacher_id: Optional[int] = None,
    ) -> Sequence[ClassSession]:
        rows: list[ClassSession] = []
        for s in self._store.sessions.values():
            if not in_range(s.session_date, start, end):
                continue
            if teacher_id is not None:
                owner = self._store.classes.get(s.class_id)
                if not owner or owner.teacher_id != int(teacher_id):
                    continue
            rows.append(s)
        return sorted(rows, key=_order_key)

    def count_by_class(self, class_ids: Sequence[int]) -> dict[int, int]:
        counts = {int(c): 0 for c in class_ids}
        for s in self._store.sessions.values():
            if s.class_id in counts:
                counts[s.class_id] += 1
        return counts

    def create_session(
        self,
        *,
        class_id: int,
        session_date: date,
        start_time: time,
        end_time: time,
        topic: Optional[str] = None,
    ) -> int:
        with self._store.transaction() as db:
            if int(class_id) not in db.classes:
                raise ConflictError("Class does not exist")
            session_id = db.next_id("sessions")
            db.sessions[session_id] = ClassSession(
                session_id=session_id,
                class_id=int(class_id),
                session_date=session_date,
                start_time=start_time,
                end_time=end_time,
                topic=topic,
            )
            return session_id

    def delete_by_id(self, session_id: int) -> bool:
        with self._store.transaction() as db:
            if int(session_id) not in db.sessions:
                return False
            db.drop_session(int(session_id))
            return True

    def count(self) -> int:
        return len(self._store.sessions)
