from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, integrity_as_conflict
from .model import Student
from .repository import StudentRepository

_COLUMNS = "s.student_id, s.first_name, s.last_name, s.student_number, s.class_id, s.email, s.phone, s.created_at"
_UPDATABLE = ("first_name", "last_name", "student_number", "class_id", "email", "phone")


def _row_to_student(row: dict) -> Student:
    return Student(
        student_id=int(row["student_id"]),
        first_name=row["first_name"],
        last_name=row["last_name"],
        student_number=row["student_number"],
        class_id=int(row["class_id"]),
        email=row.get("email"),
        phone=row.get("phone"),
        created_at=row.get("created_at"),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students s WHERE s.student_id=%s", (int(student_id),))
            row = fetchone(cur)
            return _row_to_student(row) if row else None

    def get_by_student_number(self, student_number: str) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students s WHERE s.student_number=%s", (student_number,))
            row = fetchone(cur)
            return _row_to_student(row) if row else None

    def list_students(
        self,
        *,
        class_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Sequence[Student]:
        clauses = ["1=1"]
        params: list[object] = []

        if class_id is not None:
            clauses.append("s.class_id=%s")
            params.append(int(class_id))
        if teacher_id is not None:
            clauses.append("c.teacher_id=%s")
            params.append(int(teacher_id))
        if search:
            like = f"%{search.lower()}%"
            clauses.append("(LOWER(s.first_name) LIKE %s OR LOWER(s.last_name) LIKE %s OR LOWER(s.student_number) LIKE %s)")
            params.extend([like, like, like])

        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM students s
                JOIN classes c ON c.class_id = s.class_id
                WHERE {where}
                ORDER BY s.last_name ASC, s.first_name ASC, s.student_id ASC
                """,
                tuple(params),
            )
            return [_row_to_student(r) for r in fetchall(cur)]

    def count_by_class(self, class_ids: Sequence[int]) -> dict[int, int]:
        if not class_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT class_id, COUNT(*) AS n
                FROM students
                WHERE class_id IN ({in_clause(class_ids)})
                GROUP BY class_id
                """,
                tuple(int(c) for c in class_ids),
            )
            counts = {int(c): 0 for c in class_ids}
            for r in fetchall(cur):
                counts[int(r["class_id"])] = int(r["n"])
            return counts

    def create_student(
        self,
        *,
        first_name: str,
        last_name: str,
        student_number: str,
        class_id: int,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        with integrity_as_conflict("Student ID already exists"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students(first_name, last_name, student_number, class_id, email, phone)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (first_name, last_name, student_number, int(class_id), email, phone),
            )
            return int(cur.lastrowid)

    def update_student(self, student_id: int, **fields) -> bool:
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(f"Unknown student fields: {sorted(unknown)}")
        if not fields:
            return self.get_by_id(student_id) is not None

        sets = ", ".join(f"{name}=%s" for name in fields)
        with integrity_as_conflict("Student ID already exists"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE students SET {sets} WHERE student_id=%s", (*fields.values(), int(student_id)))
            cur.execute("SELECT 1 AS ok FROM students WHERE student_id=%s", (int(student_id),))
            return fetchone(cur) is not None

    def delete_by_id(self, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (int(student_id),))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM students")
            return int(fetchone(cur)["n"])
