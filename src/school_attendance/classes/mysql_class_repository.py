from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, integrity_as_conflict
from .model import SchoolClass
from .repository import ClassRepository

_COLUMNS = "class_id, name, code, teacher_id, created_at"


def _row_to_class(row: dict) -> SchoolClass:
    return SchoolClass(
        class_id=int(row["class_id"]),
        name=row["name"],
        code=row["code"],
        teacher_id=int(row["teacher_id"]),
        created_at=row.get("created_at"),
    )


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, class_id: int) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM classes WHERE class_id=%s", (int(class_id),))
            row = fetchone(cur)
            return _row_to_class(row) if row else None

    def get_by_code(self, code: str) -> Optional[SchoolClass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM classes WHERE code=%s", (code,))
            row = fetchone(cur)
            return _row_to_class(row) if row else None

    def list_classes(self, *, teacher_id: Optional[int] = None) -> Sequence[SchoolClass]:
        where = ""
        params: tuple = ()
        if teacher_id is not None:
            where = "WHERE teacher_id=%s"
            params = (int(teacher_id),)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM classes {where} ORDER BY name ASC, class_id ASC", params)
            return [_row_to_class(r) for r in fetchall(cur)]

    def list_by_ids(self, class_ids: Sequence[int]) -> Sequence[SchoolClass]:
        if not class_ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM classes WHERE class_id IN ({in_clause(class_ids)})",
                tuple(int(c) for c in class_ids),
            )
            return [_row_to_class(r) for r in fetchall(cur)]

    def count_for_teacher(self, teacher_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM classes WHERE teacher_id=%s", (int(teacher_id),))
            return int(fetchone(cur)["n"])

    def create_class(self, *, name: str, code: str, teacher_id: int) -> int:
        with integrity_as_conflict("Class code already exists"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO classes(name, code, teacher_id) VALUES(%s,%s,%s)",
                (name, code, int(teacher_id)),
            )
            return int(cur.lastrowid)

    def update_class(self, class_id: int, *, name: Optional[str] = None, code: Optional[str] = None) -> bool:
        sets: list[str] = []
        params: list[object] = []
        if name is not None:
            sets.append("name=%s")
            params.append(name)
        if code is not None:
            sets.append("code=%s")
            params.append(code)
        if not sets:
            return self.get_by_id(class_id) is not None

        with integrity_as_conflict("Class code already exists"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE classes SET {', '.join(sets)} WHERE class_id=%s", (*params, int(class_id)))
            cur.execute("SELECT 1 AS ok FROM classes WHERE class_id=%s", (int(class_id),))
            return fetchone(cur) is not None

    def delete_by_id(self, class_id: int) -> bool:
        # students/sessions/attendance go with it (ON DELETE CASCADE).
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM classes WHERE class_id=%s", (int(class_id),))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM classes")
            return int(fetchone(cur)["n"])
