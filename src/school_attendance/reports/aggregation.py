"""Attendance statistics.

Every function here is a pure reduction over already-loaded rows: no
repository access, no clock. All rates in the application come from
:func:`attendance_rate`.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..classes.model import SchoolClass
from ..common.datetime_utils import in_range
from ..core.constants import DEFAULT_LOW_ATTENDANCE_THRESHOLD, LOW_ATTENDANCE_MIN_SESSIONS
from ..core.enums import ATTENDED_STATUSES, AttendanceStatus
from ..sessions.model import ClassSession
from ..students.model import Student


@dataclass(frozen=True)
class StudentStats:
    present: int
    absent: int
    late: int
    excused: int
    total: int
    rate: int


@dataclass(frozen=True)
class StudentReportRow:
    student: Student
    stats: StudentStats


@dataclass(frozen=True)
class LowAttendanceAlert:
    student: Student
    school_class: Optional[SchoolClass]
    rate: int
    total_sessions: int
    absences: int


@dataclass(frozen=True)
class DailySummary:
    total_sessions: int
    total_students: int
    present: int
    absent: int
    late: int
    excused: int


@dataclass(frozen=True)
class TrendPoint:
    day: date
    present: int
    absent: int
    late: int
    total: int


@dataclass(frozen=True)
class MatrixRow:
    student: Student
    statuses: list[Optional[AttendanceStatus]]
    stats: StudentStats


@dataclass(frozen=True)
class AttendanceMatrix:
    sessions: list[ClassSession]
    rows: list[MatrixRow]


def _session_order(s: ClassSession):
    return (s.session_date, s.start_time, s.session_id)


def status_counts(records: Iterable[AttendanceRecord]) -> dict[AttendanceStatus, int]:
    counts = {status: 0 for status in AttendanceStatus}
    for r in records:
        counts[r.status] += 1
    return counts


def attendance_rate(counts: Mapping[AttendanceStatus, int]) -> int:
    """Percent of PRESENT + LATE over all records, rounded half-up; 0 when empty."""
    total = sum(counts.values())
    if total == 0:
        return 0
    attended = sum(n for status, n in counts.items() if status in ATTENDED_STATUSES)
    return (200 * attended + total) // (2 * total)


def student_stats(records: Iterable[AttendanceRecord]) -> StudentStats:
    counts = status_counts(records)
    return StudentStats(
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        excused=counts[AttendanceStatus.EXCUSED],
        total=sum(counts.values()),
        rate=attendance_rate(counts),
    )


def _by_student(records: Iterable[AttendanceRecord]) -> dict[int, list[AttendanceRecord]]:
    grouped: dict[int, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        grouped[r.student_id].append(r)
    return grouped


def per_student_report(
    students: Sequence[Student],
    sessions: Sequence[ClassSession],
    records: Iterable[AttendanceRecord],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[StudentReportRow]:
    in_window = {s.session_id for s in sessions if in_range(s.session_date, start, end)}
    grouped = _by_student(r for r in records if r.session_id in in_window)
    return [
        StudentReportRow(student=s, stats=student_stats(grouped.get(s.student_id, [])))
        for s in sorted(students, key=lambda s: s.sort_key)
    ]


def low_attendance_alerts(
    students: Sequence[Student],
    records: Iterable[AttendanceRecord],
    classes: Sequence[SchoolClass],
    threshold: float = DEFAULT_LOW_ATTENDANCE_THRESHOLD,
) -> list[LowAttendanceAlert]:
    class_by_id = {c.class_id: c for c in classes}
    grouped = _by_student(records)

    alerts: list[LowAttendanceAlert] = []
    for student in students:
        stats = student_stats(grouped.get(student.student_id, []))
        if stats.total < LOW_ATTENDANCE_MIN_SESSIONS:
            continue
        if stats.rate < threshold:
            alerts.append(
                LowAttendanceAlert(
                    student=student,
                    school_class=class_by_id.get(student.class_id),
                    rate=stats.rate,
                    total_sessions=stats.total,
                    absences=stats.total - (stats.present + stats.late),
                )
            )

    alerts.sort(key=lambda a: (a.rate, a.student.last_name, a.student.first_name))
    return alerts


def daily_summary(sessions: Sequence[ClassSession], records: Iterable[AttendanceRecord]) -> DailySummary:
    """``total_students`` counts attendance records, so a student seen in two sessions counts twice."""
    session_ids = {s.session_id for s in sessions}
    counts = status_counts(r for r in records if r.session_id in session_ids)
    return DailySummary(
        total_sessions=len(session_ids),
        total_students=sum(counts.values()),
        present=counts[AttendanceStatus.PRESENT],
        absent=counts[AttendanceStatus.ABSENT],
        late=counts[AttendanceStatus.LATE],
        excused=counts[AttendanceStatus.EXCUSED],
    )


def weekly_trend(
    sessions: Sequence[ClassSession],
    records: Iterable[AttendanceRecord],
    since: date,
) -> list[TrendPoint]:
    day_of = {s.session_id: s.session_date for s in sessions if s.session_date >= since}
    per_day: dict[date, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        day = day_of.get(r.session_id)
        if day is not None:
            per_day[day].append(r)

    points = []
    for day in sorted(set(day_of.values())):
        counts = status_counts(per_day.get(day, []))
        points.append(
            TrendPoint(
                day=day,
                present=counts[AttendanceStatus.PRESENT],
                absent=counts[AttendanceStatus.ABSENT],
                late=counts[AttendanceStatus.LATE],
                total=sum(counts.values()),
            )
        )
    return points


def attendance_matrix(
    students: Sequence[Student],
    sessions: Sequence[ClassSession],
    records: Iterable[AttendanceRecord],
) -> AttendanceMatrix:
    ordered = sorted(sessions, key=_session_order)
    session_ids = {s.session_id for s in ordered}
    status_of: dict[tuple[int, int], AttendanceStatus] = {}
    grouped: dict[int, list[AttendanceRecord]] = defaultdict(list)
    for r in records:
        if r.session_id in session_ids:
            status_of[(r.student_id, r.session_id)] = r.status
            grouped[r.student_id].append(r)

    rows = [
        MatrixRow(
            student=s,
            statuses=[status_of.get((s.student_id, sess.session_id)) for sess in ordered],
            stats=student_stats(grouped.get(s.student_id, [])),
        )
        for s in sorted(students, key=lambda s: s.sort_key)
    ]
    return AttendanceMatrix(sessions=ordered, rows=rows)
