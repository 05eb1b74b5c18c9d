from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AutoCloseReason
from .model import AttendanceSession


class AttendanceSessionRepository(Protocol):
    def get_by_id(self, session_id: int) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def get_latest_open(self, user_id: int, project_external_id: Optional[str] = None) -> Optional[AttendanceSession]:
        """Most recently checked-in open session; any project when `project_external_id` is None."""

        raise NotImplementedError

    def get_latest_open_checked_in_before(self, user_id: int, before: datetime) -> Optional[AttendanceSession]:
        raise NotImplementedError

    def list_open_checked_in_before(self, cutoff: datetime) -> Sequence[AttendanceSession]:
        raise NotImplementedError

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
        """Insert an open session. May raise `ConflictError` if storage enforces one open row per pair."""

        raise NotImplementedError

    def mark_closed(
        self,
        session_id: int,
        *,
        check_out_at: datetime,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
    ) -> Optional[AttendanceSession]:
        """Close an open session. Returns None when the row is no longer open."""

        raise NotImplementedError

    def mark_auto_closed(
        self,
        session_id: int,
        *,
        check_out_at: datetime,
        reason: AutoCloseReason,
    ) -> Optional[AttendanceSession]:
        """Auto-close an open session. Returns None when the row is no longer open."""

        raise NotImplementedError
