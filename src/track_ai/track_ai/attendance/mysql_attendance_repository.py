from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

import mysql.connector

from ..core.enums import AutoCloseReason, SessionStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceSession
from .repository import AttendanceSessionRepository

_COLUMNS = """
    session_id, user_id, project_external_id,
    check_in_at, check_in_latitude, check_in_longitude, check_in_remarks,
    check_out_at, check_out_latitude, check_out_longitude, check_out_remarks,
    status, auto_closed_reason
"""


def _float_or_none(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _to_session(r: dict[str, Any]) -> AttendanceSession:
    return AttendanceSession(
        session_id=int(r["session_id"]),
        user_id=int(r["user_id"]),
        project_external_id=r["project_external_id"],
        check_in_at=r["check_in_at"],
        check_in_latitude=float(r["check_in_latitude"]),
        check_in_longitude=float(r["check_in_longitude"]),
        check_in_remarks=r.get("check_in_remarks"),
        check_out_at=r.get("check_out_at"),
        check_out_latitude=_float_or_none(r.get("check_out_latitude")),
        check_out_longitude=_float_or_none(r.get("check_out_longitude")),
        check_out_remarks=r.get("check_out_remarks"),
        status=SessionStatus(r["status"]),
        auto_closed_reason=AutoCloseReason(r["auto_closed_reason"]) if r.get("auto_closed_reason") else None,
    )


class MySQLAttendanceSessionRepository(AttendanceSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id=%s", (session_id,))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_latest_open(self, user_id: int, project_external_id: Optional[str] = None) -> Optional[AttendanceSession]:
        sql = f"SELECT {_COLUMNS} FROM attendance_sessions WHERE user_id=%s AND status='open'"
        params: list[Any] = [user_id]
        if project_external_id is not None:
            sql += " AND project_external_id=%s"
            params.append(project_external_id)
        sql += " ORDER BY check_in_at DESC, session_id DESC LIMIT 1"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_latest_open_checked_in_before(self, user_id: int, before: datetime) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE user_id=%s AND status='open' AND check_in_at < %s
                ORDER BY check_in_at DESC, session_id DESC
                LIMIT 1
                """,
                (user_id, before),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def list_open_checked_in_before(self, cutoff: datetime) -> Sequence[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_sessions
                WHERE status='open' AND check_in_at < %s
                ORDER BY check_in_at
                """,
                (cutoff,),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def create_open(
        self,
        *,
        user_id: int,
        project_external_id: str,
        check_in_at: datetime,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
    ) -> AttendanceSession:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_sessions(
                        user_id, project_external_id, check_in_at,
                        check_in_latitude, check_in_longitude, check_in_remarks, status
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,'open')
                    """,
                    (user_id, project_external_id, check_in_at, latitude, longitude, remarks),
                )
                session_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            # uq_attendance_open_session: a concurrent check-in won the race.
            raise ConflictError("An open attendance session already exists for this project") from e

        created = self.get_by_id(session_id)
        if created is None:
            raise RuntimeError(f"Attendance session {session_id} vanished after insert")
        return created

    def mark_closed(
        self,
        session_id: int,
        *,
        check_out_at: datetime,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
    ) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET check_out_at=%s, check_out_latitude=%s, check_out_longitude=%s,
                    check_out_remarks=%s, status='closed'
                WHERE session_id=%s AND status='open'
                """,
                (check_out_at, latitude, longitude, remarks, session_id),
            )
            updated = cur.rowcount > 0
        return self.get_by_id(session_id) if updated else None

    def mark_auto_closed(
        self,
        session_id: int,
        *,
        check_out_at: datetime,
        reason: AutoCloseReason,
    ) -> Optional[AttendanceSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET check_out_at=%s, status='auto_closed', auto_closed_reason=%s
                WHERE session_id=%s AND status='open'
                """,
                (check_out_at, reason.value, session_id),
            )
            updated = cur.rowcount > 0
        return self.get_by_id(session_id) if updated else None
