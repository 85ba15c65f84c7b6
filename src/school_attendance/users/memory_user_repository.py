from __future__ import annotations

from dataclasses import replace
from typing import Optional, Sequence

from ..core.enums import Role
from ..core.exceptions import ConflictError
from ..database.memory_store import InMemoryStore
from .model import User
from .repository import UserRepository


class InMemoryUserRepository(UserRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store

    def get_by_id(self, user_id: int) -> Optional[User]:
        return self._store.users.get(int(user_id))

    def get_by_email(self, email: str) -> Optional[User]:
        return next((u for u in self._store.users.values() if u.email == email), None)

    def create_user(self, *, email: str, name: str, password_hash: str, role: Role) -> int:
        with self._store.transaction() as db:
            if self.get_by_email(email):
                raise ConflictError("Email already registered")
            user_id = db.next_id("users")
            db.users[user_id] = User(
                user_id=user_id,
                email=email,
                name=name,
                password_hash=password_hash,
                role=role,
                created_at=db.clock(),
            )
            return user_id

    def update_user(self, user_id: int, *, name: Optional[str] = None, role: Optional[Role] = None) -> bool:
        with self._store.transaction() as db:
            user = db.users.get(int(user_id))
            if not user:
                return False
            db.users[user.user_id] = replace(
                user,
                name=name if name is not None else user.name,
                role=role if role is not None else user.role,
            )
            return True

    def update_password(self, user_id: int, *, password_hash: str) -> bool:
        with self._store.transaction() as db:
            user = db.users.get(int(user_id))
            if not user:
                return False
            db.users[user.user_id] = replace(user, password_hash=password_hash)
            return True

    def delete_by_id(self, user_id: int) -> bool:
        with self._store.transaction() as db:
            if int(user_id) not in db.users:
                return False
            if any(c.teacher_id == int(user_id) for c in db.classes.values()):
                raise ConflictError("User still owns classes")
            del db.users[int(user_id)]
            return True

    def list_admin_view(self) -> Sequence[dict]:
        users = sorted(self._store.users.values(), key=lambda u: (u.created_at, u.user_id), reverse=True)
        return [
            {
                "user_id": u.user_id,
                "email": u.email,
                "name": u.name,
                "role": u.role,
                "created_at": u.created_at,
                "class_count": sum(1 for c in self._store.classes.values() if c.teacher_id == u.user_id),
            }
            for u in users
        ]

    def count(self) -> int:
        return len(self._store.users)
