from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from ..attendance.model import AttendanceEntry
from ..core.enums import AttendanceStatus, Role
from .connection import DBConfig, DatabaseConnection

logger = logging.getLogger(__name__)

DEMO_USERS = [
    # email, name, password, role
    ("admin@attendance.app", "Admin User", "admin123", "ADMIN"),
    ("teacher@attendance.app", "Marie Dupont", "teacher123", "TEACHER"),
]

DEMO_CLASSES = [
    # code, name, owner email
    ("INFO-101", "Introduction to Programming", "teacher@attendance.app"),
    ("INFO-201", "Data Structures", "teacher@attendance.app"),
    ("WEB-101", "Web Development", "admin@attendance.app"),
]

DEMO_STUDENTS = [
    ("STU001", "Alice", "Martin"),
    ("STU002", "Bob", "Bernard"),
    ("STU003", "Charlie", "Petit"),
    ("STU004", "Diana", "Durand"),
    ("STU005", "Eve", "Thomas"),
    ("STU006", "Frank", "Robert"),
    ("STU007", "Grace", "Richard"),
    ("STU008", "Henry", "Michel"),
    ("STU009", "Iris", "Garcia"),
    ("STU010", "Jack", "Martinez"),
]

DEMO_STATUS_CYCLE = ["PRESENT", "PRESENT", "PRESENT", "LATE", "ABSENT", "PRESENT", "EXCUSED"]


def _strip_create_db_and_use(sql: str) -> str:
    # Keep schema.sql compatible regardless of DB name.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    # Minimal SQL splitter for schema/seed files (handles ';' inside quotes and -- comments).
    buf: list[str] = []
    in_single = False
    in_double = False
    escape = False

    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    for ch in "\n".join(lines):
        if escape:
            buf.append(ch)
            escape = False
            continue

        if ch == "\\":
            buf.append(ch)
            escape = True
            continue

        if ch == "'" and not in_double:
            in_single = not in_single
            buf.append(ch)
            continue

        if ch == '"' and not in_single:
            in_double = not in_double
            buf.append(ch)
            continue

        if ch == ";" and not in_single and not in_double:
            stmt = "".join(buf).strip()
            buf.clear()
            if stmt:
                yield stmt
            continue

        buf.append(ch)

    tail = "".join(buf).strip()
    if tail:
        yield tail


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = DatabaseConnection(target).connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)

    sql = _strip_create_db_and_use(Path(schema_path).read_text(encoding="utf-8"))
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied schema %s", schema_path)


def ensure_demo_data(db_config: dict, *, today: date | None = None) -> None:
    """Idempotent demo seed: two users, three classes, ten students, a week of sessions."""
    today = today or date.today()
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor(dictionary=True)

        user_ids: dict[str, int] = {}
        for email, name, password, role in DEMO_USERS:
            cur.execute("SELECT user_id FROM users WHERE email=%s", (email,))
            row = cur.fetchone()
            if row:
                user_ids[email] = int(row["user_id"])
                continue
            cur.execute(
                "INSERT INTO users(email, name, password_hash, role) VALUES(%s,%s,%s,%s)",
                (email, name, generate_password_hash(password), role),
            )
            user_ids[email] = int(cur.lastrowid)

        class_ids: dict[str, int] = {}
        for code, name, owner in DEMO_CLASSES:
            cur.execute("SELECT class_id FROM classes WHERE code=%s", (code,))
            row = cur.fetchone()
            if row:
                class_ids[code] = int(row["class_id"])
                continue
            cur.execute(
                "INSERT INTO classes(name, code, teacher_id) VALUES(%s,%s,%s)",
                (name, code, user_ids[owner]),
            )
            class_ids[code] = int(cur.lastrowid)

        # First half of the roster in INFO-101, second half in INFO-201.
        student_ids: dict[str, int] = {}
        codes = ["INFO-101", "INFO-201"]
        for idx, (number, first_name, last_name) in enumerate(DEMO_STUDENTS):
            cur.execute("SELECT student_id FROM students WHERE student_number=%s", (number,))
            row = cur.fetchone()
            if row:
                student_ids[number] = int(row["student_id"])
                continue
            class_id = class_ids[codes[idx * len(codes) // len(DEMO_STUDENTS)]]
            cur.execute(
                """
                INSERT INTO students(first_name, last_name, student_number, class_id)
                VALUES(%s,%s,%s,%s)
                """,
                (first_name, last_name, number, class_id),
            )
            student_ids[number] = int(cur.lastrowid)

        cur.execute("SELECT COUNT(*) AS n FROM sessions")
        if int(cur.fetchone()["n"]) == 0:
            for offset in range(5, 0, -1):
                day = today - timedelta(days=offset)
                for code in codes:
                    cur.execute(
                        """
                        INSERT INTO sessions(class_id, session_date, start_time, end_time, topic)
                        VALUES(%s,%s,%s,%s,%s)
                        """,
                        (class_ids[code], day, time(9, 0), time(10, 30), f"{code} week review"),
                    )
                    session_id = int(cur.lastrowid)
                    cur.execute("SELECT student_id FROM students WHERE class_id=%s", (class_ids[code],))
                    for n, row in enumerate(cur.fetchall()):
                        status = DEMO_STATUS_CYCLE[(n + offset) % len(DEMO_STATUS_CYCLE)]
                        cur.execute(
                            """
                            INSERT INTO attendance(student_id, session_id, status, marked_at, updated_at)
                            VALUES(%s,%s,%s,NOW(),NOW())
                            """,
                            (int(row["student_id"]), session_id, status),
                        )

        conn.commit()
    finally:
        conn.close()
    logger.info("Demo data ready")


def list_tables(db_config: dict) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_dict(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def seed_demo_repositories(container, *, today: date | None = None) -> None:
    """Same demo data as :func:`ensure_demo_data`, written through the repositories.

    Used for the in-memory store, which has no SQL layer.
    """
    today = today or date.today()

    user_ids: dict[str, int] = {}
    for email, name, password, role in DEMO_USERS:
        existing = container.users_repo.get_by_email(email)
        user_ids[email] = existing.user_id if existing else container.users_repo.create_user(
            email=email, name=name, password_hash=generate_password_hash(password), role=Role(role)
        )

    class_ids: dict[str, int] = {}
    for code, name, owner in DEMO_CLASSES:
        existing = container.classes_repo.get_by_code(code)
        class_ids[code] = existing.class_id if existing else container.classes_repo.create_class(
            name=name, code=code, teacher_id=user_ids[owner]
        )

    codes = ["INFO-101", "INFO-201"]
    for idx, (number, first_name, last_name) in enumerate(DEMO_STUDENTS):
        if container.students_repo.get_by_student_number(number):
            continue
        container.students_repo.create_student(
            first_name=first_name,
            last_name=last_name,
            student_number=number,
            class_id=class_ids[codes[idx * len(codes) // len(DEMO_STUDENTS)]],
        )

    if container.sessions_repo.count() == 0:
        for offset in range(5, 0, -1):
            day = today - timedelta(days=offset)
            for code in codes:
                session_id = container.sessions_repo.create_session(
                    class_id=class_ids[code],
                    session_date=day,
                    start_time=time(9, 0),
                    end_time=time(10, 30),
                    topic=f"{code} week review",
                )
                roster = container.students_repo.list_students(class_id=class_ids[code])
                entries = [
                    AttendanceEntry(
                        student_id=s.student_id,
                        status=AttendanceStatus(DEMO_STATUS_CYCLE[(n + offset) % len(DEMO_STATUS_CYCLE)]),
                    )
                    for n, s in enumerate(roster)
                ]
                container.attendance_repo.create_many(session_id=session_id, entries=entries, now=datetime.now())
    logger.info("Demo data ready (repositories)")
