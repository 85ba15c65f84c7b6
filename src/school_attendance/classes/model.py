from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class SchoolClass:
    """Domain entity: a course/section owned by exactly one teacher."""

    class_id: int
    name: str
    code: str
    teacher_id: int
    created_at: Optional[datetime] = None
