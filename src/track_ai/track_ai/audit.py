"""Audit trail sink.

Audit events go to the `track_ai.audit` logger; where they end up (file,
collector) is deployment configuration, not application code.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

audit_logger = logging.getLogger("track_ai.audit")


def audit_log(user_id: Optional[int], action: str, contract_id: Optional[str] = None, **details: Any) -> None:
    audit_logger.info(
        "%s user_id=%s contract_id=%s details=%s",
        action,
        user_id,
        contract_id,
        details,
        extra={"audit_action": action, "audit_user_id": user_id, "audit_contract_id": contract_id, "audit_details": details},
    )
