from __future__ import annotations

from datetime import date, time
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause, normalize_mysql_time
from .model import ClassSession
from .repository import SessionRepository

_COLUMNS = "se.session_id, se.class_id, se.session_date, se.start_time, se.end_time, se.topic"


def _row_to_session(row: dict) -> ClassSession:
    return ClassSession(
        session_id=int(row["session_id"]),
        class_id=int(row["class_id"]),
        session_date=row["session_date"],
        start_time=normalize_mysql_time(row["start_time"]),
        end_time=normalize_mysql_time(row["end_time"]),
        topic=row.get("topic"),
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[ClassSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM sessions se WHERE se.session_id=%s", (int(session_id),))
            row = fetchone(cur)
            return _row_to_session(row) if row else None

    def list_for_class(
        self,
        class_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
    ) -> Sequence[ClassSession]:
        clauses = ["se.class_id=%s"]
        params: list[object] = [int(class_id)]
        if start is not None:
            clauses.append("se.session_date >= %s")
            params.append(start)
        if end is not None:
            clauses.append("se.session_date <= %s")
            params.append(end)

        order = "DESC" if newest_first else "ASC"
        sql = (
            f"SELECT {_COLUMNS} FROM sessions se WHERE {' AND '.join(clauses)} "
            f"ORDER BY se.session_date {order}, se.start_time {order}, se.session_id {order}"
        )
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_row_to_session(r) for r in fetchall(cur)]

    def list_between(
        self,
        *,
        start: date,
        end: date,
        teacher_id: Optional[int] = None,
    ) -> Sequence[ClassSession]:
        clauses = ["se.session_date BETWEEN %s AND %s"]
        params: list[object] = [start, end]
        if teacher_id is not None:
            clauses.append("c.teacher_id=%s")
            params.append(int(teacher_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM sessions se
                JOIN classes c ON c.class_id = se.class_id
                WHERE {' AND '.join(clauses)}
                ORDER BY se.session_date ASC, se.start_time ASC, se.session_id ASC
                """,
                tuple(params),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def count_by_class(self, class_ids: Sequence[int]) -> dict[int, int]:
        if not class_ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT class_id, COUNT(*) AS n
                FROM sessions
                WHERE class_id IN ({in_clause(class_ids)})
                GROUP BY class_id
                """,
                tuple(int(c) for c in class_ids),
            )
            counts = {int(c): 0 for c in class_ids}
            for r in fetchall(cur):
                counts[int(r["class_id"])] = int(r["n"])
            return counts

    def create_session(
        self,
        *,
        class_id: int,
        session_date: date,
        start_time: time,
        end_time: time,
        topic: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO sessions(class_id, session_date, start_time, end_time, topic)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(class_id), session_date, start_time, end_time, topic),
            )
            return int(cur.lastrowid)

    def delete_by_id(self, session_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM sessions WHERE session_id=%s", (int(session_id),))
            return cur.rowcount > 0

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM sessions")
            return int(fetchone(cur)["n"])
