from __future__ import annotations

from datetime import date, datetime

import pytest
from werkzeug.security import generate_password_hash

from school_attendance.container import build_memory_container
from school_attendance.core.enums import Role
from school_attendance.users.model import Actor

NOW = datetime(2026, 3, 2, 9, 15, 40)
TODAY = NOW.date()


class School:
    """Small builder over a memory container so tests read as a story."""

    def __init__(self, container):
        self.c = container

    def user(self, email: str, role: Role = Role.TEACHER, name: str = "Test User", password: str = "secret123") -> Actor:
        user_id = self.c.users_repo.create_user(
            email=email, name=name, password_hash=generate_password_hash(password), role=role
        )
        return Actor(user_id=user_id, role=role)

    def klass(self, owner: Actor, code: str = "INFO-101", name: str = "Programming"):
        return self.c.class_service.create_class(owner, name=name, code=code)

    def student(self, actor: Actor, school_class, number: str, first: str = "Alice", last: str = "Martin"):
        return self.c.student_service.create_student(
            actor,
            first_name=first,
            last_name=last,
            student_number=number,
            class_id=school_class.class_id,
        )

    def session(self, actor: Actor, school_class, day: date = TODAY, start: str = "09:00", end: str = "10:00"):
        return self.c.attendance_service.create_session(
            actor,
            class_id=school_class.class_id,
            session_date=day,
            start_time=start,
            end_time=end,
        )


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def container(clock):
    return build_memory_container(clock=clock)


@pytest.fixture
def school(container):
    return School(container)


@pytest.fixture
def admin(school):
    return school.user("admin@school.test", Role.ADMIN, name="Admin")


@pytest.fixture
def teacher(school):
    return school.user("t1@school.test", name="Teacher One")


@pytest.fixture
def other_teacher(school):
    return school.user("t2@school.test", name="Teacher Two")


@pytest.fixture
def school_factory():
    return School
