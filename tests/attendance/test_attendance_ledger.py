from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from school_attendance.attendance.ledger import AttendanceLedger
from school_attendance.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from school_attendance.attendance.model import AttendanceEntry
from school_attendance.container import build_memory_container
from school_attendance.core.enums import AttendanceStatus
from school_attendance.core.exceptions import BatchRejectedError, ConflictError, NotFoundError, ValidationError


class Ticker:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(minutes=1)
        return current


@pytest.fixture
def roster(school, teacher):
    c = school.klass(teacher)
    students = [
        school.student(teacher, c, "S-1", "Alice", "Martin"),
        school.student(teacher, c, "S-2", "Bob", "Bernard"),
        school.student(teacher, c, "S-3", "Chloe", "Petit"),
    ]
    return c, students, school.session(teacher, c)


def test_upsert_twice_leaves_one_record_with_latest_status(container, roster):
    _, students, v = roster
    s = students[0]

    first = container.ledger.upsert_attendance(s.student_id, v.session_id, "PRESENT", "on time")
    second = container.ledger.upsert_attendance(s.student_id, v.session_id, "ABSENT")

    records = container.attendance_repo.list_for_sessions([v.session_id])
    assert len(records) == 1
    assert second.attendance_id == first.attendance_id
    assert records[0].status == AttendanceStatus.ABSENT
    # full upsert without notes clears them
    assert records[0].notes is None


def test_upsert_refreshes_updated_at_but_keeps_marked_at(school_factory):
    ticker = Ticker(datetime(2026, 3, 2, 9, 0))
    container = build_memory_container(clock=ticker)
    local = school_factory(container)
    owner = local.user("owner@school.test")
    c = local.klass(owner)
    s = local.student(owner, c, "S-9")
    v = local.session(owner, c)

    first = container.ledger.upsert_attendance(s.student_id, v.session_id, "LATE")
    second = container.ledger.upsert_attendance(s.student_id, v.session_id, "PRESENT")

    assert second.marked_at == first.marked_at
    assert second.updated_at > first.updated_at


def test_status_must_match_vocabulary_exactly(container, roster):
    _, students, v = roster
    record = container.ledger.upsert_attendance(students[0].student_id, v.session_id, "EXCUSED")
    assert record.status == AttendanceStatus.EXCUSED

    for bad in ("HERE", "present", " LATE ", None):
        with pytest.raises(ValidationError):
            container.ledger.upsert_attendance(students[1].student_id, v.session_id, bad)
    assert container.attendance_repo.get_for_pair(student_id=students[1].student_id, session_id=v.session_id) is None

    with pytest.raises(ValidationError):
        container.ledger.update_attendance(record.attendance_id, status="absent")
    assert container.attendance_repo.get_by_id(record.attendance_id).status == AttendanceStatus.EXCUSED


def test_unknown_session_or_student_is_not_found(container, roster):
    _, students, v = roster
    with pytest.raises(NotFoundError):
        container.ledger.upsert_attendance(students[0].student_id, 999, "PRESENT")
    with pytest.raises(NotFoundError):
        container.ledger.upsert_attendance(999, v.session_id, "PRESENT")


def test_student_from_another_class_conflicts(container, school, teacher, roster):
    _, _, v = roster
    other = school.klass(teacher, code="INFO-201")
    outsider = school.student(teacher, other, "S-X")
    with pytest.raises(ConflictError):
        container.ledger.upsert_attendance(outsider.student_id, v.session_id, "PRESENT")


def test_bulk_collects_item_failures_without_aborting(container, roster):
    _, students, v = roster
    result = container.ledger.upsert_attendance_bulk(
        v.session_id,
        [
            AttendanceEntry(student_id=students[0].student_id, status="PRESENT"),
            AttendanceEntry(student_id=students[1].student_id, status="MAYBE"),
            AttendanceEntry(student_id=12345, status="LATE"),
            AttendanceEntry(student_id=students[2].student_id, status="LATE", notes="bus"),
        ],
    )

    assert [r.student_id for r in result.records] == [students[0].student_id, students[2].student_id]
    assert [(f.student_id, f.kind) for f in result.failures] == [
        (students[1].student_id, "validation_failure"),
        (12345, "not_found"),
    ]
    assert len(container.attendance_repo.list_for_sessions([v.session_id])) == 2


def test_atomic_bulk_writes_nothing_on_any_failure(container, roster):
    _, students, v = roster
    with pytest.raises(BatchRejectedError) as exc:
        container.ledger.upsert_attendance_bulk(
            v.session_id,
            [
                AttendanceEntry(student_id=students[0].student_id, status="PRESENT"),
                AttendanceEntry(student_id=students[1].student_id, status="NOPE"),
            ],
            atomic=True,
        )
    assert exc.value.to_dict()["failures"] == [
        {"studentId": students[1].student_id, "kind": "validation_failure", "message": "Invalid attendance status: 'NOPE'"}
    ]
    assert container.attendance_repo.list_for_sessions([v.session_id]) == []


def test_atomic_bulk_from_configuration(clock, school_factory):
    container = build_memory_container(clock=clock, atomic_bulk=True)
    local = school_factory(container)
    owner = local.user("owner@school.test")
    c = local.klass(owner)
    s = local.student(owner, c, "S-1")
    v = local.session(owner, c)

    result = container.ledger.upsert_attendance_bulk(v.session_id, [AttendanceEntry(s.student_id, "PRESENT")])
    assert len(result.records) == 1 and result.failures == []

    with pytest.raises(BatchRejectedError):
        container.ledger.upsert_attendance_bulk(v.session_id, [AttendanceEntry(777, "PRESENT")])


def test_quick_attendance_creates_session_now_and_records(container, roster):
    c, students, _ = roster
    before = container.sessions_repo.count()

    result = container.ledger.quick_attendance(
        c.class_id,
        [AttendanceEntry(s.student_id, "PRESENT") for s in students],
        topic="Pop quiz",
    )

    assert container.sessions_repo.count() == before + 1
    assert result.session.session_date == date(2026, 3, 2)
    assert result.session.start_time == time(9, 15)
    assert result.session.end_time == time(10, 15)
    assert result.session.topic == "Pop quiz"
    assert {r.student_id for r in result.records} == {s.student_id for s in students}


def test_quick_attendance_rejects_invalid_roster_before_creating_session(container, roster):
    c, students, _ = roster
    before = container.sessions_repo.count()
    with pytest.raises(BatchRejectedError):
        container.ledger.quick_attendance(
            c.class_id,
            [AttendanceEntry(students[0].student_id, "PRESENT"), AttendanceEntry(students[0].student_id, "LATE")],
        )
    assert container.sessions_repo.count() == before


class ExplodingAttendance(InMemoryAttendanceRepository):
    def create_many(self, *, session_id, entries, now):
        raise ConflictError("Attendance already recorded for this student and session")


def test_quick_attendance_removes_session_when_inserts_fail(container, clock, roster):
    c, students, _ = roster
    ledger = AttendanceLedger(
        ExplodingAttendance(container.store), container.sessions_repo, container.students_repo, clock=clock
    )
    before = container.sessions_repo.count()

    with pytest.raises(ConflictError):
        ledger.quick_attendance(c.class_id, [AttendanceEntry(students[0].student_id, "PRESENT")])

    assert container.sessions_repo.count() == before


def test_partial_update_keeps_unspecified_fields(container, roster):
    _, students, v = roster
    record = container.ledger.upsert_attendance(students[0].student_id, v.session_id, "LATE", "bus delay")

    only_status = container.ledger.update_attendance(record.attendance_id, status="PRESENT")
    assert only_status.status == AttendanceStatus.PRESENT
    assert only_status.notes == "bus delay"

    cleared = container.ledger.update_attendance(record.attendance_id, notes="")
    assert cleared.status == AttendanceStatus.PRESENT
    assert cleared.notes is None

    with pytest.raises(NotFoundError):
        container.ledger.update_attendance(999, status="PRESENT")


def test_quick_attendance_late_at_night_ends_same_day(school_factory):
    container = build_memory_container(clock=lambda: datetime(2026, 3, 2, 23, 30, 12))
    local = school_factory(container)
    owner = local.user("night@school.test")
    c = local.klass(owner)
    s = local.student(owner, c, "S-N")

    result = container.ledger.quick_attendance(c.class_id, [AttendanceEntry(s.student_id, "PRESENT")])

    assert result.session.session_date == date(2026, 3, 2)
    assert result.session.start_time == time(23, 30)
    assert result.session.end_time > result.session.start_time
    assert result.session.end_time.strftime("%H:%M") == "23:59"
