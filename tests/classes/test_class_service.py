from __future__ import annotations

import pytest

from school_attendance.core.enums import AttendanceStatus
from school_attendance.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError


def test_create_class_is_owned_by_actor(container, teacher):
    created = container.class_service.create_class(teacher, name=" Programming ", code="INFO-101")
    assert created.teacher_id == teacher.user_id
    assert created.name == "Programming"

    with pytest.raises(ConflictError):
        container.class_service.create_class(teacher, name="Dup", code="INFO-101")
    with pytest.raises(ValidationError):
        container.class_service.create_class(teacher, name="", code="X")


def test_list_is_scoped_and_counted(container, school, admin, teacher, other_teacher):
    b = school.klass(teacher, code="B", name="Beta")
    school.klass(teacher, code="A", name="Alpha")
    school.klass(other_teacher, code="C", name="Gamma")
    school.student(teacher, b, "S-1")
    school.session(teacher, b)

    mine = container.class_service.list_classes(teacher)
    assert [s.school_class.code for s in mine] == ["A", "B"]
    assert (mine[1].student_count, mine[1].session_count) == (1, 1)
    assert mine[1].teacher.user_id == teacher.user_id

    assert len(container.class_service.list_classes(admin)) == 3


def test_detail_includes_stats(container, school, teacher):
    c = school.klass(teacher)
    s1 = school.student(teacher, c, "S-1", "Zed", "Zulu")
    s2 = school.student(teacher, c, "S-2", "Amy", "Adams")
    v = school.session(teacher, c)
    container.ledger.upsert_attendance(s1.student_id, v.session_id, "PRESENT")
    container.ledger.upsert_attendance(s2.student_id, v.session_id, "ABSENT")

    detail = container.class_service.get_detail(teacher, c.class_id)

    assert [s.student_number for s in detail.students] == ["S-2", "S-1"]
    assert detail.recent_sessions[0].attendance_count == 2
    assert detail.status_counts[AttendanceStatus.PRESENT] == 1
    assert detail.status_counts[AttendanceStatus.EXCUSED] == 0
    assert detail.attendance_rate == 50


def test_update_and_access(container, school, admin, teacher, other_teacher):
    c = school.klass(teacher, code="A")
    school.klass(teacher, code="B")

    with pytest.raises(ConflictError):
        container.class_service.update_class(teacher, c.class_id, code="B")
    with pytest.raises(AuthorizationError):
        container.class_service.update_class(other_teacher, c.class_id, name="Hijack")

    renamed = container.class_service.update_class(admin, c.class_id, name="Renamed", code="A")
    assert (renamed.name, renamed.code) == ("Renamed", "A")


def test_delete_cascades(container, school, teacher, other_teacher):
    c = school.klass(teacher)
    s = school.student(teacher, c, "S-1")
    v = school.session(teacher, c)
    container.ledger.upsert_attendance(s.student_id, v.session_id, "PRESENT")

    with pytest.raises(AuthorizationError):
        container.class_service.delete_class(other_teacher, c.class_id)

    container.class_service.delete_class(teacher, c.class_id)

    assert container.students_repo.get_by_id(s.student_id) is None
    assert container.sessions_repo.get_by_id(v.session_id) is None
    assert container.attendance_repo.list_for_sessions([v.session_id]) == []
    with pytest.raises(NotFoundError):
        container.class_service.get_detail(teacher, c.class_id)
