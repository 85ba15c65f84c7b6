from __future__ import annotations

from datetime import date, timedelta

import pytest

from school_attendance.core.exceptions import AuthorizationError, ValidationError

TODAY = date(2026, 3, 2)


@pytest.fixture
def populated(container, school, teacher, other_teacher):
    mine = school.klass(teacher, code="INFO-101")
    theirs = school.klass(other_teacher, code="WEB-101")
    weak = school.student(teacher, mine, "S-1", "Alice", "Martin")
    strong = school.student(teacher, mine, "S-2", "Bob", "Bernard")
    elsewhere = school.student(other_teacher, theirs, "S-3", "Chloe", "Petit")

    for offset, (weak_status, strong_status) in enumerate([("ABSENT", "PRESENT"), ("ABSENT", "LATE"), ("PRESENT", "PRESENT")]):
        day = TODAY - timedelta(days=3 - offset)
        v = school.session(teacher, mine, day=day)
        container.ledger.upsert_attendance(weak.student_id, v.session_id, weak_status)
        container.ledger.upsert_attendance(strong.student_id, v.session_id, strong_status)
        w = school.session(other_teacher, theirs, day=day)
        container.ledger.upsert_attendance(elsewhere.student_id, w.session_id, "ABSENT")

    today_session = school.session(teacher, mine, day=TODAY)
    container.ledger.upsert_attendance(weak.student_id, today_session.session_id, "EXCUSED")
    return mine, theirs, weak, strong, elsewhere


def test_class_report_window(container, teacher, populated):
    mine, _, weak, strong, _ = populated
    report = container.report_service.class_report(teacher, mine.class_id, start=date(2026, 2, 28), end=date(2026, 3, 1))

    assert report.total_sessions == 2
    assert [r.student.student_id for r in report.rows] == [strong.student_id, weak.student_id]
    assert report.rows[1].stats.total == 2
    assert report.rows[1].stats.rate == 50


def test_class_report_rejects_inverted_window(container, teacher, populated):
    mine = populated[0]
    with pytest.raises(ValidationError):
        container.report_service.class_report(teacher, mine.class_id, start=date(2026, 3, 2), end=date(2026, 3, 1))


def test_alerts_are_scoped_for_teachers(container, teacher, admin, populated):
    _, _, weak, _, elsewhere = populated

    mine, threshold = container.report_service.alerts(teacher)
    assert threshold == 70
    assert [a.student.student_id for a in mine] == [weak.student_id]

    everything, _ = container.report_service.alerts(admin, "70")
    assert [a.student.student_id for a in everything] == [elsewhere.student_id, weak.student_id]


def test_alerts_threshold_validation(container, teacher):
    with pytest.raises(ValidationError):
        container.report_service.alerts(teacher, "abc")
    with pytest.raises(ValidationError):
        container.report_service.alerts(teacher, "150")


def test_admin_stats(container, admin, teacher, populated):
    stats = container.report_service.admin_stats(admin)

    assert (stats.users, stats.students, stats.classes, stats.sessions) == (3, 3, 2, 7)
    assert stats.today.total_sessions == 1
    assert stats.today.total_students == 1
    assert stats.today.excused == 1
    assert [p.day for p in stats.weekly_trend] == [date(2026, 2, 27), date(2026, 2, 28), date(2026, 3, 1), date(2026, 3, 2)]

    with pytest.raises(AuthorizationError):
        container.report_service.admin_stats(teacher)


def test_export_requires_class_access(container, teacher, other_teacher, populated):
    mine = populated[0]
    export = container.report_service.export(teacher, mine.class_id, fmt="csv")
    assert export.filename == "attendance-INFO-101-2026-03-02.csv"
    lines = export.content.decode("utf-8").splitlines()
    assert len(lines) == 3

    with pytest.raises(AuthorizationError):
        container.report_service.export(other_teacher, mine.class_id, fmt="csv")
