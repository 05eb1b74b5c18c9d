from __future__ import annotations

import secrets
from datetime import datetime


def generate_idempotency_key(scope: str, action: str, user_id: int, contract_id: str, *, now: datetime) -> str:
    """Server-side fallback key for callers that sent no `client_request_id`.

    The random suffix makes every call unique, so a replay of the same
    logical operation gets a different key and is NOT de-duplicated upstream.
    Offline-capable clients must send their own `client_request_id`.
    """

    return f"{scope}_{action}_{user_id}_{contract_id}_{now:%Y%m%d%H%M%S}_{secrets.token_hex(4)}"
