from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, integrity_as_conflict
from .model import User
from .repository import UserRepository

_COLUMNS = "user_id, email, name, password_hash, role, created_at"


def _row_to_user(row: dict) -> User:
    return User(
        user_id=int(row["user_id"]),
        email=row["email"],
        name=row["name"],
        password_hash=row["password_hash"],
        role=Role(row["role"]),
        created_at=row.get("created_at"),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (int(user_id),))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE email=%s", (email,))
            row = fetchone(cur)
            return _row_to_user(row) if row else None

    def create_user(self, *, email: str, name: str, password_hash: str, role: Role) -> int:
        with integrity_as_conflict("Email already registered"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(email, name, password_hash, role)
                VALUES(%s,%s,%s,%s)
                """,
                (email, name, password_hash, role.value),
            )
            return int(cur.lastrowid)

    def update_user(self, user_id: int, *, name: Optional[str] = None, role: Optional[Role] = None) -> bool:
        sets: list[str] = []
        params: list[object] = []
        if name is not None:
            sets.append("name=%s")
            params.append(name)
        if role is not None:
            sets.append("role=%s")
            params.append(role.value)
        if not sets:
            return self.get_by_id(user_id) is not None

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE users SET {', '.join(sets)} WHERE user_id=%s", (*params, int(user_id)))
            # rowcount is 0 when values are unchanged, so check existence instead.
            cur.execute("SELECT 1 AS ok FROM users WHERE user_id=%s", (int(user_id),))
            return fetchone(cur) is not None

    def update_password(self, user_id: int, *, password_hash: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE users SET password_hash=%s WHERE user_id=%s", (password_hash, int(user_id)))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with integrity_as_conflict("User still owns classes"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM users WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def list_admin_view(self) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT u.user_id, u.email, u.name, u.role, u.created_at,
                       COUNT(c.class_id) AS class_count
                FROM users u
                LEFT JOIN classes c ON c.teacher_id = u.user_id
                GROUP BY u.user_id, u.email, u.name, u.role, u.created_at
                ORDER BY u.created_at DESC, u.user_id DESC
                """
            )
            return [
                {
                    "user_id": int(r["user_id"]),
                    "email": r["email"],
                    "name": r["name"],
                    "role": Role(r["role"]),
                    "created_at": r.get("created_at"),
                    "class_count": int(r["class_count"] or 0),
                }
                for r in fetchall(cur)
            ]

    def count(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM users")
            return int(fetchone(cur)["n"])
