from __future__ import annotations

import logging

import pytest

from school_attendance.access.policy import chain_owner, ensure_admin, ensure_can_delete_user, has_access
from school_attendance.core.enums import AttendanceStatus, Role
from school_attendance.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    OwnershipMismatchError,
)
from school_attendance.users.model import Actor


@pytest.mark.parametrize("actor_id,owner_id", [(1, 1), (1, 2), (7, None), (3, 99)])
def test_admin_always_has_access(actor_id, owner_id):
    assert has_access(Role.ADMIN, actor_id, owner_id) is True


@pytest.mark.parametrize("actor_id,owner_id,expected", [(1, 1, True), (1, 2, False), (2, 1, False), (5, 5, True)])
def test_teacher_has_access_only_to_own_resources(actor_id, owner_id, expected):
    assert has_access(Role.TEACHER, actor_id, owner_id) is expected


def test_teacher_without_owner_is_denied():
    assert has_access(Role.TEACHER, 1, None) is False


def test_chain_owner_agrees():
    assert chain_owner(4, 4) == 4


def test_chain_owner_diverges_is_access_denied():
    with pytest.raises(OwnershipMismatchError) as exc:
        chain_owner(4, 5)
    assert isinstance(exc.value, AuthorizationError)
    assert exc.value.kind == "access_denied"


def test_admin_cannot_delete_self():
    me = Actor(user_id=1, role=Role.ADMIN)
    with pytest.raises(ConflictError):
        ensure_can_delete_user(me, 1)


def test_admin_can_delete_someone_else():
    ensure_can_delete_user(Actor(user_id=1, role=Role.ADMIN), 2)


def test_teacher_cannot_manage_users():
    with pytest.raises(AuthorizationError):
        ensure_admin(Actor(user_id=2, role=Role.TEACHER))
    with pytest.raises(AuthorizationError):
        ensure_can_delete_user(Actor(user_id=2, role=Role.TEACHER), 3)


def test_guard_missing_class_is_not_found(container, teacher):
    with pytest.raises(NotFoundError):
        container.guard.class_for(teacher, 404)


def test_guard_denies_other_teacher_and_logs(container, school, teacher, other_teacher, caplog):
    c = school.klass(teacher)
    with caplog.at_level(logging.WARNING, logger="school_attendance.access.guard"):
        with pytest.raises(AuthorizationError):
            container.guard.class_for(other_teacher, c.class_id)
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_guard_walks_session_and_student_chains(container, school, teacher, other_teacher, admin):
    c = school.klass(teacher)
    s = school.student(teacher, c, "S-1")
    v = school.session(teacher, c)
    record = container.ledger.upsert_attendance(s.student_id, v.session_id, AttendanceStatus.PRESENT)

    assert container.guard.attendance_for(teacher, record.attendance_id) == record
    assert container.guard.attendance_for(admin, record.attendance_id) == record
    with pytest.raises(AuthorizationError):
        container.guard.attendance_for(other_teacher, record.attendance_id)


def test_guard_flags_diverging_chain_as_integrity_error(container, school, teacher, other_teacher, admin, caplog):
    mine = school.klass(teacher, code="A-1")
    theirs = school.klass(other_teacher, code="B-1")
    s = school.student(teacher, mine, "S-1")
    v = school.session(teacher, mine)
    record = container.ledger.upsert_attendance(s.student_id, v.session_id, "PRESENT")

    # Corrupt the data behind the services' back.
    container.students_repo.update_student(s.student_id, class_id=theirs.class_id)

    with caplog.at_level(logging.ERROR, logger="school_attendance.access.guard"):
        with pytest.raises(OwnershipMismatchError):
            container.guard.attendance_for(admin, record.attendance_id)
    assert any(r.levelno == logging.ERROR and "mismatch" in r.getMessage() for r in caplog.records)
