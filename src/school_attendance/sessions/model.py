from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional


@dataclass(frozen=True)
class ClassSession:
    """One dated meeting of a class."""

    session_id: int
    class_id: int
    session_date: date
    start_time: time
    end_time: time
    topic: Optional[str] = None
