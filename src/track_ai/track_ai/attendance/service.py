from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..audit import audit_log
from ..common.datetime_utils import now_local
from ..common.idempotency import generate_idempotency_key
from ..core.enums import AttendanceState
from ..core.exceptions import ConfigError, ConflictError
from ..saras.client import SarasClient
from ..saras.dto import ProcessResponse
from ..saras.exceptions import SarasApiError
from .model import AttendanceSession
from .session_engine import AttendanceSessionEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttendanceResult:
    """Outcome of a check-in/check-out. Business failures are `response.success == False`, never exceptions."""

    response: ProcessResponse
    session: Optional[AttendanceSession]
    attendance_status: AttendanceState

    @property
    def success(self) -> bool:
        return self.response.success

    def to_dict(self) -> dict:
        return {
            "success": self.response.success,
            "entry_id": self.response.entry_id,
            "message": self.response.message,
            "attendance_status": self.attendance_status.value,
            "session": self.session.to_dict() if self.session else None,
        }


class AttendanceService:
    """Use case: check in / check out against Saras and keep the local session in step.

    Saras is written first; the local session changes only after Saras accepted
    the entry, so a failed call never leaves a half-open or half-closed session.
    """

    def __init__(
        self,
        saras: SarasClient,
        engine: AttendanceSessionEngine,
        *,
        sub_project_id: Optional[str],
        default_contract_id: Optional[str] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._saras = saras
        self._engine = engine
        self._sub_project_id = sub_project_id
        self._default_contract_id = default_contract_id
        self._clock = clock

    def _require_sub_project(self) -> str:
        if not self._sub_project_id:
            raise ConfigError("Saras attendance subproject id is not configured")
        return self._sub_project_id

    def check_in(
        self,
        user_id: int,
        contract_id: str,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
        ip_address: Optional[str] = None,
        client_request_id: Optional[str] = None,
    ) -> AttendanceResult:
        self._engine.auto_close_previous_day_sessions(user_id)

        if not self._engine.can_check_in(user_id, contract_id):
            return self._already_checked_in(user_id, contract_id)

        if client_request_id:
            idempotency_key = client_request_id
        else:
            idempotency_key = generate_idempotency_key("attendance", "check_in", user_id, contract_id, now=self._clock())

        now = self._clock()
        try:
            response = self._saras.create_process(
                self._require_sub_project(),
                {
                    "userId": user_id,
                    "contractId": contract_id or self._default_contract_id,
                    "ipAddressCheckIn": ip_address,
                    "geoLocationCheckIn": f"{latitude},{longitude}",
                    "date": now.date().isoformat(),
                    "checkInTime": now.strftime("%H:%M:%S"),
                    "remarks": remarks,
                },
                idempotency_key,
            )
        except SarasApiError as e:
            logger.warning("Check-in sync failed user=%s contract=%s: %s", user_id, contract_id, e.to_log_context())
            return AttendanceResult(ProcessResponse.failure(e.message), None, AttendanceState.CHECKED_OUT)

        if not response.success:
            return AttendanceResult(response, None, AttendanceState.CHECKED_OUT)

        try:
            session = self._engine.open_session(user_id, contract_id, latitude, longitude, remarks)
        except ConflictError:
            # Lost a race with a concurrent check-in for the same pair.
            return self._already_checked_in(user_id, contract_id)

        audit_log(
            user_id,
            "attendance_check_in",
            contract_id,
            entry_id=response.entry_id,
            idempotency_key=idempotency_key,
            session_id=session.session_id,
            latitude=latitude,
            longitude=longitude,
        )
        return AttendanceResult(response, session, AttendanceState.CHECKED_IN)

    def check_out(
        self,
        user_id: int,
        contract_id: str,
        latitude: float,
        longitude: float,
        remarks: Optional[str] = None,
        ip_address: Optional[str] = None,
        client_request_id: Optional[str] = None,
    ) -> AttendanceResult:
        session = self._engine.get_open_session(user_id, contract_id)
        if session is None:
            return AttendanceResult(
                ProcessResponse.failure("Not checked in to this project. Please check in first."),
                None,
                AttendanceState.CHECKED_OUT,
            )

        if client_request_id:
            idempotency_key = client_request_id
        else:
            idempotency_key = generate_idempotency_key("attendance", "check_out", user_id, contract_id, now=self._clock())

        now = self._clock()
        try:
            response = self._saras.create_process(
                self._require_sub_project(),
                {
                    "userId": user_id,
                    "contractId": contract_id or self._default_contract_id,
                    "ipAddressCheckOut": ip_address,
                    "geoLocationCheckOut": f"{latitude},{longitude}",
                    "date": now.date().isoformat(),
                    "checkOutTime": now.strftime("%H:%M:%S"),
                    "remarks": remarks,
                },
                idempotency_key,
            )
        except SarasApiError as e:
            logger.warning("Check-out sync failed user=%s contract=%s: %s", user_id, contract_id, e.to_log_context())
            return AttendanceResult(ProcessResponse.failure(e.message), session, AttendanceState.CHECKED_IN)

        if not response.success:
            return AttendanceResult(response, session, AttendanceState.CHECKED_IN)

        closed = self._engine.close_session(session, latitude, longitude, remarks)
        logger.info(
            "Checked out user=%s contract=%s session=%s duration_minutes=%s",
            user_id,
            contract_id,
            closed.session_id,
            closed.duration_minutes(),
        )
        audit_log(
            user_id,
            "attendance_check_out",
            contract_id,
            entry_id=response.entry_id,
            idempotency_key=idempotency_key,
            session_id=closed.session_id,
            duration_minutes=closed.duration_minutes(),
            latitude=latitude,
            longitude=longitude,
        )
        return AttendanceResult(response, closed, AttendanceState.CHECKED_OUT)

    def _already_checked_in(self, user_id: int, contract_id: str) -> AttendanceResult:
        return AttendanceResult(
            ProcessResponse.failure("Already checked in to this project. Please check out first."),
            self._engine.get_open_session(user_id, contract_id),
            AttendanceState.CHECKED_IN,
        )
