from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..audit import audit_log
from ..core.enums import AutoCloseReason
from ..core.exceptions import ValidationError
from .model import AttendanceSession
from .session_engine import AttendanceSessionEngine

logger = logging.getLogger(__name__)


@dataclass
class AutoCheckoutReport:
    cutoff: datetime
    dry_run: bool
    candidates: list[AttendanceSession] = field(default_factory=list)
    closed: list[AttendanceSession] = field(default_factory=list)


class AutoCheckoutJob:
    """End-of-day sweep for forgotten check-outs, run by an external scheduler."""

    def __init__(self, engine: AttendanceSessionEngine):
        self._engine = engine

    def run(self, cutoff: datetime, *, dry_run: bool = False) -> AutoCheckoutReport:
        report = AutoCheckoutReport(cutoff=cutoff, dry_run=dry_run)
        report.candidates = list(self._engine.get_sessions_for_auto_close(cutoff))
        logger.info(
            "Auto-checkout: %d open session(s) checked in before %s%s",
            len(report.candidates),
            cutoff.isoformat(sep=" "),
            " (dry run)" if dry_run else "",
        )
        if dry_run:
            return report

        for session in report.candidates:
            try:
                closed = self._engine.auto_close_session(session, AutoCloseReason.END_OF_DAY)
            except ValidationError:
                # checked out between listing and closing
                logger.info("Auto-checkout: session %s already closed, skipping", session.session_id)
                continue
            report.closed.append(closed)
            audit_log(
                closed.user_id,
                "attendance_auto_checkout",
                closed.project_external_id,
                session_id=closed.session_id,
                check_in_at=closed.check_in_at.isoformat(),
                auto_closed_at=closed.check_out_at.isoformat() if closed.check_out_at else None,
                reason=AutoCloseReason.END_OF_DAY.value,
            )
        return report
