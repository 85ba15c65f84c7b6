"""Ownership rules shared by every resource-scoped operation.

Everything here is pure; lookups happen in :mod:`access.guard`.
"""

from __future__ import annotations

from typing import Optional

from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ConflictError, OwnershipMismatchError
from ..users.model import Actor


def has_access(actor_role: Role, actor_id: int, resource_owner_id: Optional[int]) -> bool:
    if actor_role == Role.ADMIN:
        return True
    return resource_owner_id is not None and int(actor_id) == int(resource_owner_id)


def can_access(actor: Actor, resource_owner_id: Optional[int]) -> bool:
    return has_access(actor.role, actor.user_id, resource_owner_id)


def chain_owner(session_owner_id: int, student_owner_id: int) -> int:
    """Owner of an attendance record reached through both its session and its student."""
    if int(session_owner_id) != int(student_owner_id):
        raise OwnershipMismatchError()
    return int(session_owner_id)


def ensure_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise AuthorizationError("Administrator role required")


def ensure_can_delete_user(actor: Actor, target_user_id: int) -> None:
    ensure_admin(actor)
    if int(target_user_id) == actor.user_id:
        raise ConflictError("You cannot delete your own account")


def scope_teacher_id(actor: Actor) -> Optional[int]:
    """``teacher_id`` filter for list queries: ``None`` (everything) for admins."""
    return None if actor.is_admin else actor.user_id
