from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

import pytest

from track_ai.attendance.model import AttendanceSession
from track_ai.attendance.service import AttendanceService
from track_ai.attendance.session_engine import AttendanceSessionEngine
from track_ai.core.enums import AttendanceState, AutoCloseReason, SessionStatus
from track_ai.core.exceptions import ConfigError, ConflictError
from track_ai.saras.dto import ProcessResponse
from track_ai.saras.exceptions import SarasAuthFailed, SarasUnavailable, SarasValidationError


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class InMemorySessions:
    def __init__(self):
        self.rows: dict[int, AttendanceSession] = {}

    def _open(self, user_id):
        return [s for s in self.rows.values() if s.user_id == user_id and s.status == SessionStatus.OPEN]

    def get_by_id(self, session_id):
        return self.rows.get(session_id)

    def get_latest_open(self, user_id, project_external_id=None):
        rows = [s for s in self._open(user_id) if project_external_id in (None, s.project_external_id)]
        return max(rows, key=lambda s: s.check_in_at, default=None)

    def get_latest_open_checked_in_before(self, user_id, before):
        return max((s for s in self._open(user_id) if s.check_in_at < before), key=lambda s: s.check_in_at, default=None)

    def list_open_checked_in_before(self, cutoff):
        return [s for s in self.rows.values() if s.status == SessionStatus.OPEN and s.check_in_at < cutoff]

    def create_open(self, *, user_id, project_external_id, check_in_at, latitude, longitude, remarks=None):
        if self.get_latest_open(user_id, project_external_id):
            raise ConflictError("open session exists")
        session_id = len(self.rows) + 1
        self.rows[session_id] = AttendanceSession(
            session_id, user_id, project_external_id, check_in_at, latitude, longitude, remarks
        )
        return self.rows[session_id]

    def mark_closed(self, session_id, *, check_out_at, latitude, longitude, remarks=None):
        s = self.rows[session_id]
        if s.status != SessionStatus.OPEN:
            return None
        self.rows[session_id] = replace(
            s,
            check_out_at=check_out_at,
            check_out_latitude=latitude,
            check_out_longitude=longitude,
            check_out_remarks=remarks,
            status=SessionStatus.CLOSED,
        )
        return self.rows[session_id]

    def mark_auto_closed(self, session_id, *, check_out_at, reason):
        s = self.rows[session_id]
        if s.status != SessionStatus.OPEN:
            return None
        self.rows[session_id] = replace(s, check_out_at=check_out_at, status=SessionStatus.AUTO_CLOSED, auto_closed_reason=reason)
        return self.rows[session_id]


class RecordingSaras:
    def __init__(self):
        self.calls: list[tuple[str, dict, Optional[str]]] = []
        self.error: Optional[Exception] = None
        self.response: Optional[ProcessResponse] = None

    def create_process(self, sub_project_id, fields, idempotency_key=None):
        self.calls.append((sub_project_id, dict(fields), idempotency_key))
        if self.error is not None:
            raise self.error
        return self.response or ProcessResponse(success=True, entry_id=f"entry_{len(self.calls)}")


@pytest.fixture
def clock():
    return Clock(datetime(2026, 3, 2, 8, 15, 0))


@pytest.fixture
def repo():
    return InMemorySessions()


@pytest.fixture
def saras():
    return RecordingSaras()


@pytest.fixture
def service(repo, saras, clock):
    engine = AttendanceSessionEngine(repo, clock=clock)
    return AttendanceService(saras, engine, sub_project_id="sub-attendance", clock=clock)


def test_check_in_creates_remote_entry_then_opens_session(service, saras, repo):
    result = service.check_in(7, "PROJ-1", 14.5, 121.25, remarks="gate 2", ip_address="10.0.0.1")

    assert result.success
    assert result.attendance_status == AttendanceState.CHECKED_IN
    assert result.session.is_open()
    sub_project_id, fields, _ = saras.calls[0]
    assert sub_project_id == "sub-attendance"
    assert fields["userId"] == 7
    assert fields["contractId"] == "PROJ-1"
    assert fields["geoLocationCheckIn"] == "14.5,121.25"
    assert fields["ipAddressCheckIn"] == "10.0.0.1"
    assert fields["date"] == "2026-03-02"
    assert fields["checkInTime"] == "08:15:00"


def test_client_request_id_is_threaded_unchanged(service, saras):
    service.check_in(7, "PROJ-1", 0, 0, client_request_id="offline-abc-1")

    assert saras.calls[0][2] == "offline-abc-1"


def test_generated_keys_differ_between_calls(service, saras, repo):
    service.check_in(7, "PROJ-1", 0, 0)
    service.check_out(7, "PROJ-1", 0, 0)
    service.check_in(7, "PROJ-1", 0, 0)

    keys = [key for _, _, key in saras.calls]
    assert all(key.startswith("attendance_") for key in keys)
    assert len(set(keys)) == 3


def test_second_check_in_fails_without_remote_call(service, saras):
    first = service.check_in(7, "PROJ-1", 0, 0)
    second = service.check_in(7, "PROJ-1", 0, 0)

    assert not second.success
    assert second.attendance_status == AttendanceState.CHECKED_IN
    assert second.session.session_id == first.session.session_id
    assert len(saras.calls) == 1


def test_remote_failure_on_check_in_leaves_no_session(service, saras, repo):
    saras.error = SarasUnavailable("/process/createProcess", "Connection failed")

    result = service.check_in(7, "PROJ-1", 0, 0)

    assert not result.success
    assert result.response.message == "Connection failed"
    assert result.session is None
    assert result.attendance_status == AttendanceState.CHECKED_OUT
    assert repo.rows == {}


def test_unsuccessful_remote_response_leaves_no_session(service, saras, repo):
    saras.response = ProcessResponse.failure("rejected")

    result = service.check_in(7, "PROJ-1", 0, 0)

    assert not result.success
    assert repo.rows == {}


def test_check_out_without_open_session_skips_remote(service, saras):
    result = service.check_out(7, "PROJ-1", 0, 0)

    assert not result.success
    assert result.attendance_status == AttendanceState.CHECKED_OUT
    assert saras.calls == []


def test_remote_failure_on_check_out_keeps_session_open(service, saras, repo):
    opened = service.check_in(7, "PROJ-1", 0, 0).session
    saras.error = SarasValidationError("/process/createProcess", "invalid", {"checkOutTime": ["required"]})

    result = service.check_out(7, "PROJ-1", 1, 1)

    assert not result.success
    assert result.attendance_status == AttendanceState.CHECKED_IN
    assert repo.get_by_id(opened.session_id).is_open()


def test_check_out_closes_session(service, saras, repo, clock):
    opened = service.check_in(7, "PROJ-1", 0, 0).session
    clock.now = datetime(2026, 3, 2, 17, 0)

    result = service.check_out(7, "PROJ-1", 1.5, 2.5, remarks="done", client_request_id="out-1")

    assert result.success
    assert result.attendance_status == AttendanceState.CHECKED_OUT
    closed = repo.get_by_id(opened.session_id)
    assert closed.status == SessionStatus.CLOSED
    assert closed.check_out_latitude == 1.5
    _, fields, key = saras.calls[-1]
    assert fields["geoLocationCheckOut"] == "1.5,2.5"
    assert fields["checkOutTime"] == "17:00:00"
    assert key == "out-1"


def test_check_in_heals_yesterdays_session_first(service, repo, clock):
    service.check_in(7, "PROJ-1", 0, 0)
    clock.now = datetime(2026, 3, 3, 8, 0)

    result = service.check_in(7, "PROJ-1", 0, 0)

    assert result.success
    healed = repo.get_by_id(1)
    assert healed.status == SessionStatus.AUTO_CLOSED
    assert healed.auto_closed_reason == AutoCloseReason.PREVIOUS_DAY_UNCLOSED


def test_auth_failure_is_returned_as_structured_failure(service, saras):
    saras.error = SarasAuthFailed("Saras session expired. Please log in again.")

    result = service.check_in(7, "PROJ-1", 0, 0)

    assert not result.success
    assert "expired" in result.response.message


def test_missing_sub_project_is_fatal(repo, saras, clock):
    engine = AttendanceSessionEngine(repo, clock=clock)
    service = AttendanceService(saras, engine, sub_project_id=None, clock=clock)

    with pytest.raises(ConfigError):
        service.check_in(7, "PROJ-1", 0, 0)
