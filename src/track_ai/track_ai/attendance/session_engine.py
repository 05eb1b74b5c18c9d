from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..core.enums import AttendanceState, AutoCloseReason
from ..core.exceptions import ConflictError, ValidationError
from .model import AttendanceSession
from .repository import AttendanceSessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceStatusView:
    status: AttendanceState
    session: Optional[AttendanceSession]
    auto_closed_session: Optional[AttendanceSession]


class AttendanceSessionEngine:
    """State machine for attendance sessions: open -> closed | auto_closed.

    Closed states are terminal; a new check-in always creates a new session.
    `open_session` refuses a second open session for the same (user, project)
    with `ConflictError`; the MySQL schema backs it with a unique index.
    """

    def __init__(self, sessions: AttendanceSessionRepository, *, clock: Callable[[], datetime] = now_local):
        self._sessions = sessions
        self._clock = clock

    def get_open_session(self, user_id: int, project_external_id: str) -> Optional[AttendanceSession]:
        # If storage ever holds more than one, the latest check-in wins.
        return self._sessions.get_latest_open(user_id, project_external_id)

    def get_any_open_session(self, user_id: int) -> Optional[AttendanceSession]:
        return self._sessions.get_latest_open(user_id)

    def can_check_in(self, user_id: int, project_external_id: str) -> bool:
        return self.get_open_session(user_id, project_external_id) is None

    def can_check_out(self, user_id: int, project_external_id: str) -> bool:
        return self.get_open_session(user_id, project_external_id) is not None

    def open_session(
        self,
        user_id: int,
        project_external_id: str,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
    ) -> AttendanceSession:
        if not self.can_check_in(user_id, project_external_id):
            raise ConflictError(f"User {user_id} already has an open session for {project_external_id}")
        return self._sessions.create_open(
            user_id=user_id,
            project_external_id=project_external_id,
            check_in_at=self._clock(),
            latitude=latitude,
            longitude=longitude,
            remarks=remarks,
        )

    def close_session(
        self,
        session: AttendanceSession,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
    ) -> AttendanceSession:
        if not session.is_open():
            raise ValidationError(f"Session {session.session_id} is already {session.status.value}")

        closed = self._sessions.mark_closed(
            session.session_id,
            check_out_at=self._clock(),
            latitude=latitude,
            longitude=longitude,
            remarks=remarks,
        )
        if closed is None:
            raise ValidationError(f"Session {session.session_id} is no longer open")
        return closed

    def auto_close_session(self, session: AttendanceSession, reason: AutoCloseReason) -> AttendanceSession:
        """Close without a user action. Records the time and reason, never a location."""

        if not session.is_open():
            raise ValidationError(f"Session {session.session_id} is already {session.status.value}")

        closed = self._sessions.mark_auto_closed(session.session_id, check_out_at=self._clock(), reason=reason)
        if closed is None:
            raise ValidationError(f"Session {session.session_id} is no longer open")

        logger.info(
            "Auto-closed attendance session %s user=%s project=%s reason=%s",
            closed.session_id,
            closed.user_id,
            closed.project_external_id,
            reason.value,
        )
        return closed

    def auto_close_previous_day_sessions(self, user_id: int) -> Optional[AttendanceSession]:
        """Heal sessions left open from an earlier day, across all of the user's projects.

        Runs at the start of every check-in and status query. Returns the most
        recently checked-in session it closed, if any.
        """

        start_of_today = datetime.combine(self._clock().date(), datetime.min.time())
        first_closed: Optional[AttendanceSession] = None
        while True:
            orphan = self._sessions.get_latest_open_checked_in_before(user_id, start_of_today)
            if orphan is None:
                return first_closed
            closed = self._sessions.mark_auto_closed(
                orphan.session_id,
                check_out_at=self._clock(),
                reason=AutoCloseReason.PREVIOUS_DAY_UNCLOSED,
            )
            if closed is None:
                # closed concurrently by another request
                continue
            logger.info(
                "Auto-closed attendance session %s user=%s project=%s reason=%s",
                closed.session_id,
                closed.user_id,
                closed.project_external_id,
                AutoCloseReason.PREVIOUS_DAY_UNCLOSED.value,
            )
            first_closed = first_closed or closed

    def get_sessions_for_auto_close(self, cutoff: datetime) -> Sequence[AttendanceSession]:
        return self._sessions.list_open_checked_in_before(cutoff)

    def get_status(self, user_id: int, project_external_id: str) -> AttendanceStatusView:
        auto_closed = self.auto_close_previous_day_sessions(user_id)
        session = self.get_open_session(user_id, project_external_id)
        return AttendanceStatusView(
            status=AttendanceState.CHECKED_IN if session else AttendanceState.CHECKED_OUT,
            session=session,
            auto_closed_session=auto_closed,
        )
