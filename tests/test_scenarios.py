"""End-to-end flows over the in-memory container."""

from __future__ import annotations

from datetime import date, time

import pytest

from school_attendance.core.enums import AttendanceStatus
from school_attendance.core.exceptions import AuthorizationError
from school_attendance.reports.aggregation import attendance_rate, daily_summary, status_counts

TODAY = date(2026, 3, 2)


@pytest.fixture
def info101(container, school, teacher):
    c = school.klass(teacher, code="INFO-101")
    s = school.student(teacher, c, "STU001")
    v = school.session(teacher, c, day=TODAY)
    return c, s, v


def _records_for(container, session_id):
    return container.attendance_repo.list_for_sessions([session_id])


def test_mark_present_creates_record(container, teacher, info101):
    _, s, v = info101
    container.attendance_service.mark(teacher, session_id=v.session_id, student_id=s.student_id, status="PRESENT")

    counts = status_counts(_records_for(container, v.session_id))
    assert counts == {
        AttendanceStatus.PRESENT: 1,
        AttendanceStatus.ABSENT: 0,
        AttendanceStatus.LATE: 0,
        AttendanceStatus.EXCUSED: 0,
    }
    assert attendance_rate(counts) == 100


def test_remarking_overwrites_single_record(container, teacher, info101):
    _, s, v = info101
    container.attendance_service.mark(teacher, session_id=v.session_id, student_id=s.student_id, status="PRESENT")
    container.attendance_service.mark(teacher, session_id=v.session_id, student_id=s.student_id, status="ABSENT")

    records = _records_for(container, v.session_id)
    assert len(records) == 1
    assert records[0].status == AttendanceStatus.ABSENT
    assert attendance_rate(status_counts(records)) == 0


def test_two_sessions_is_not_enough_for_an_alert(container, school, teacher, info101):
    c, _, _ = info101
    s2 = school.student(teacher, c, "STU002", "Bob", "Bernard")
    for day, status in ((date(2026, 2, 27), "ABSENT"), (date(2026, 2, 28), "PRESENT")):
        v = school.session(teacher, c, day=day)
        container.attendance_service.mark(teacher, session_id=v.session_id, student_id=s2.student_id, status=status)

    alerts, _ = container.report_service.alerts(teacher, 70)
    assert s2.student_id not in [a.student.student_id for a in alerts]


def test_other_teacher_is_denied_admin_is_not(container, admin, other_teacher, info101):
    c, s, v = info101

    class_scoped = [
        lambda actor: container.class_service.get_detail(actor, c.class_id),
        lambda actor: container.class_service.update_class(actor, c.class_id, name="Renamed"),
        lambda actor: container.report_service.class_report(actor, c.class_id),
        lambda actor: container.attendance_service.list_sessions(actor, c.class_id),
        lambda actor: container.attendance_service.create_session(
            actor, class_id=c.class_id, session_date=TODAY, start_time="13:00", end_time="14:00"
        ),
        lambda actor: container.attendance_service.mark(
            actor, session_id=v.session_id, student_id=s.student_id, status="LATE"
        ),
        lambda actor: container.attendance_service.quick(
            actor, class_id=c.class_id, items=[{"studentId": s.student_id, "status": "PRESENT"}]
        ),
    ]
    for call in class_scoped:
        with pytest.raises(AuthorizationError):
            call(other_teacher)
        call(admin)


def test_daily_summary_counts_each_record(container, school, teacher, info101):
    c, s, v1 = info101
    others = [school.student(teacher, c, f"STU00{n}", f"F{n}", f"L{n}") for n in (2, 3)]
    v2 = school.session(teacher, c, day=TODAY, start="14:00", end="15:00")
    roster = [s] + others

    for v in (v1, v2):
        container.attendance_service.mark_bulk(
            teacher,
            session_id=v.session_id,
            items=[{"studentId": st.student_id, "status": "PRESENT"} for st in roster],
        )

    view = container.attendance_service.today(teacher)
    assert view.summary.total_sessions == 2
    assert view.summary.total_students == 6
    assert view.summary == daily_summary(
        [v1, v2], container.attendance_repo.list_for_sessions([v1.session_id, v2.session_id])
    )


def test_quick_attendance_roster_then_roster_view(container, teacher, info101):
    c, s, _ = info101
    result = container.attendance_service.quick(
        teacher, class_id=c.class_id, items=[{"studentId": s.student_id, "status": "LATE", "notes": "bus"}]
    )
    assert result.session.start_time == time(9, 15)

    roster = container.attendance_service.roster(teacher, result.session.session_id)
    assert [(line.student.student_id, line.attendance.status) for line in roster.lines] == [
        (s.student_id, AttendanceStatus.LATE)
    ]

    record = roster.lines[0].attendance
    updated = container.attendance_service.update(teacher, record.attendance_id, notes="")
    assert updated.status == AttendanceStatus.LATE and updated.notes is None


def test_bulk_payload_keeps_notes(container, teacher, info101):
    _, s, v = info101
    result = container.attendance_service.mark_bulk(
        teacher,
        session_id=v.session_id,
        items=[{"studentId": s.student_id, "status": "EXCUSED", "notes": "doctor"}],
    )
    assert [(r.student_id, r.status, r.notes) for r in result.records] == [
        (s.student_id, AttendanceStatus.EXCUSED, "doctor")
    ]
    assert result.failures == []
