from __future__ import annotations

import logging
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..access.policy import ensure_admin, ensure_can_delete_user
from ..common.validators import coerce_role, require_email, require_min_length, require_non_empty
from ..core.constants import PASSWORD_MIN_LENGTH
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from .model import Actor, User
from .repository import UserRepository

logger = logging.getLogger(__name__)


def _load(users: UserRepository, user_id: int) -> User:
    user = users.get_by_id(user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def _new_user(users: UserRepository, *, email: str, password: str, name: str, role: Role) -> User:
    email = require_email(email)
    name = require_non_empty(name, "Name")
    require_min_length(password, "Password", PASSWORD_MIN_LENGTH)

    if users.get_by_email(email):
        raise ConflictError("Email already registered")

    user_id = users.create_user(
        email=email,
        name=name,
        password_hash=generate_password_hash(password),
        role=role,
    )
    logger.info("User created: id=%s role=%s", user_id, role.value)
    return _load(users, user_id)


class AuthService:
    """Use case: register, log in and manage one's own account."""

    def __init__(self, users: UserRepository):
        self._users = users

    def register(self, *, email: str, password: str, name: str) -> User:
        # Self-registration never grants ADMIN.
        return _new_user(self._users, email=email, password=password, name=name, role=Role.TEACHER)

    def authenticate(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = self._users.get_by_email(str(email).strip().lower())
        if not user:
            raise AuthenticationError("Invalid credentials")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # placeholder or corrupted hash values
            ok = False

        if not ok:
            raise AuthenticationError("Invalid credentials")
        return user

    def current_user(self, user_id: int) -> User:
        return _load(self._users, user_id)

    def update_profile(self, actor: Actor, *, name: Optional[str]) -> User:
        if name is not None:
            self._users.update_user(actor.user_id, name=require_non_empty(name, "Name"))
        return _load(self._users, actor.user_id)

    def change_password(self, actor: Actor, *, current_password: str, new_password: str) -> None:
        require_non_empty(current_password, "Current password")
        require_min_length(new_password, "New password", PASSWORD_MIN_LENGTH)

        user = _load(self._users, actor.user_id)
        if not check_password_hash(user.password_hash, current_password):
            raise AuthenticationError("Current password is incorrect")

        self._users.update_password(user.user_id, password_hash=generate_password_hash(new_password))
        logger.info("Password changed: user=%s", user.user_id)


class UserService:
    """Use case: manage users (admin)."""

    def __init__(self, users: UserRepository):
        self._users = users

    def list_users(self, actor: Actor) -> Sequence[dict]:
        ensure_admin(actor)
        return self._users.list_admin_view()

    def create_user(self, actor: Actor, *, email: str, password: str, name: str, role) -> User:
        ensure_admin(actor)
        return _new_user(self._users, email=email, password=password, name=name, role=coerce_role(role))

    def update_user(self, actor: Actor, user_id: int, *, name: Optional[str] = None, role=None) -> User:
        ensure_admin(actor)
        _load(self._users, user_id)
        self._users.update_user(
            user_id,
            name=require_non_empty(name, "Name") if name is not None else None,
            role=coerce_role(role) if role is not None else None,
        )
        return _load(self._users, user_id)

    def delete_user(self, actor: Actor, user_id: int) -> None:
        ensure_can_delete_user(actor, user_id)
        _load(self._users, user_id)
        self._users.delete_by_id(user_id)
        logger.info("User deleted: id=%s by=%s", user_id, actor.user_id)
