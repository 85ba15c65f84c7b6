from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, never on a concrete store.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, *, email: str, name: str, password_hash: str, role: Role) -> int:
        raise NotImplementedError

    def update_user(self, user_id: int, *, name: Optional[str] = None, role: Optional[Role] = None) -> bool:
        raise NotImplementedError

    def update_password(self, user_id: int, *, password_hash: str) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def list_admin_view(self) -> Sequence[dict]:
        """Users newest first, each with ``class_count``."""

        raise NotImplementedError

    def count(self) -> int:
        raise NotImplementedError
