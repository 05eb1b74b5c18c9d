from __future__ import annotations

from enum import Enum


class SessionStatus(str, Enum):
    """Lifecycle of an attendance session. `closed`/`auto_closed` are terminal."""

    OPEN = "open"
    CLOSED = "closed"
    AUTO_CLOSED = "auto_closed"


class AutoCloseReason(str, Enum):
    END_OF_DAY = "end_of_day"
    PREVIOUS_DAY_UNCLOSED = "previous_day_unclosed"


class AttendanceState(str, Enum):
    """What the caller sees as `attendance_status`."""

    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    UPLOADED = "uploaded"
    FAILED = "failed"
    DELETED = "deleted"


class SarasMode(str, Enum):
    STUB = "stub"
    LIVE = "live"


class TokenStrategy(str, Enum):
    SERVICE_ACCOUNT = "service_account"
    PER_USER = "per_user"
