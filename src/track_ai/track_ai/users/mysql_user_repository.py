from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import User
from .repository import UserRepository

_COLUMNS = """
    user_id, name, username, email, password_hash,
    saras_user_id, saras_token, saras_token_expires_at, is_active
"""


def _to_user(row: dict[str, Any]) -> User:
    return User(
        user_id=int(row["user_id"]),
        name=row["name"],
        username=row["username"],
        email=row.get("email"),
        password_hash=row["password_hash"],
        saras_user_id=row.get("saras_user_id"),
        saras_token=row.get("saras_token"),
        saras_token_expires_at=row.get("saras_token_expires_at"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM users WHERE user_id=%s", (user_id,))
            row = fetchone(cur)
            return _to_user(row) if row else None

    def get_by_login(self, identifier: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM users WHERE email=%s OR username=%s LIMIT 1",
                (identifier, identifier),
            )
            row = fetchone(cur)
            return _to_user(row) if row else None

    def create_user(
        self,
        *,
        name: str,
        username: str,
        email: Optional[str],
        password_hash: str,
        saras_user_id: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO users(name, username, email, password_hash, saras_user_id)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (name, username, email, password_hash, saras_user_id),
            )
            return int(cur.lastrowid)

    def update_login(self, user_id: int, *, password_hash: str, saras_user_id: Optional[str]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE users
                SET password_hash=%s, saras_user_id=COALESCE(%s, saras_user_id)
                WHERE user_id=%s
                """,
                (password_hash, saras_user_id, user_id),
            )

    def store_saras_token(self, user_id: int, *, token: str, expires_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET saras_token=%s, saras_token_expires_at=%s WHERE user_id=%s",
                (token, expires_at, user_id),
            )

    def clear_saras_token(self, user_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE users SET saras_token=NULL, saras_token_expires_at=NULL WHERE user_id=%s",
                (user_id,),
            )
