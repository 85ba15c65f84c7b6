from __future__ import annotations

from datetime import date, time
from typing import Optional, Protocol, Sequence

from .model import ClassSession


class SessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        raise NotImplementedError

    def list_for_class(
        self,
        class_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> Sequence[ClassSession]:
        """Sessions dated within [start, end] (inclusive, open when omitted)."""

        raise NotImplementedError

    def list_between(
        self,
        *,
        start: date,
        end: date,
        teacher_id: Optional[int] = None,
    ) -> Sequence[ClassSession]:
        """Sessions of every class (or of one teacher's classes), oldest first."""

        raise NotImplementedError

    def count_by_class(self, class_ids: Sequence[int]) -> dict[int, int]:
        raise NotImplementedError

    def create_session(
        self,
        *,
        class_id: int,
        session_date: date,
        start_time: time,
        end_time: time,
        topic: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def delete_by_id(self, session_id: int) -> bool:
        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
