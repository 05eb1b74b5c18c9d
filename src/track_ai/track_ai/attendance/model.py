from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import whole_minutes_between
from ..core.enums import AutoCloseReason, SessionStatus


@dataclass(frozen=True)
class AttendanceSession:
    """Domain entity: one check-in/check-out span for a user on a project.

    Check-out fields stay None while the session is open. Auto-closed sessions
    get a check-out time but no check-out location.
    """

    session_id: int
    user_id: int
    project_external_id: str
    check_in_at: datetime
    check_in_latitude: float
    check_in_longitude: float
    check_in_remarks: Optional[str] = None
    check_out_at: Optional[datetime] = None
    check_out_latitude: Optional[float] = None
    check_out_longitude: Optional[float] = None
    check_out_remarks: Optional[str] = None
    status: SessionStatus = SessionStatus.OPEN
    auto_closed_reason: Optional[AutoCloseReason] = None

    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

    def was_auto_closed(self) -> bool:
        return self.status == SessionStatus.AUTO_CLOSED

    def duration_minutes(self) -> Optional[int]:
        if self.check_out_at is None:
            return None
        return whole_minutes_between(self.check_in_at, self.check_out_at)

    def to_dict(self) -> dict:
        return {
            "id": self.session_id,
            "project_external_id": self.project_external_id,
            "status": self.status.value,
            "check_in_at": self.check_in_at.isoformat(),
            "check_in_latitude": self.check_in_latitude,
            "check_in_longitude": self.check_in_longitude,
            "check_out_at": self.check_out_at.isoformat() if self.check_out_at else None,
            "duration_minutes": self.duration_minutes(),
            "auto_closed_reason": self.auto_closed_reason.value if self.auto_closed_reason else None,
        }
