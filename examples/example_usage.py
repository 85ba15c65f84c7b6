"""Example: drive the service layer directly (no Flask), on the in-memory store.

Controllers are thin; everything below is what they call.
"""

from school_attendance.container import build_memory_container
from school_attendance.database.bootstrap import seed_demo_repositories
from school_attendance.users.model import Actor


def main():
    container = build_memory_container()
    seed_demo_repositories(container)

    teacher = container.auth_service.authenticate("teacher@attendance.app", "teacher123")
    actor = Actor.of(teacher)

    for summary in container.class_service.list_classes(actor):
        report = container.report_service.class_report(actor, summary.school_class.class_id)
        print(f"{summary.school_class.code}: {summary.student_count} students, {report.total_sessions} sessions")
        for row in report.rows:
            print(f"  {row.student.last_name}, {row.student.first_name}: {row.stats.rate}%")

    alerts, threshold = container.report_service.alerts(actor)
    print(f"{len(alerts)} student(s) below {threshold}%")


if __name__ == "__main__":
    main()
