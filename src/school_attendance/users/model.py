from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Note: plain data object, holds no data-access code.
    """

    user_id: int
    email: str
    name: str
    password_hash: str
    role: Role
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation (what the HTTP layer resolves from the login session)."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def of(cls, user: User) -> "Actor":
        return cls(user_id=user.user_id, role=user.role)
