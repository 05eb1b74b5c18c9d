from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    """Domain entity: a field engineer.

    `saras_token`/`saras_token_expires_at` hold the per-user Saras credential
    written at login; the expiry already has the safety buffer applied.
    """

    user_id: int
    name: str
    username: str
    email: Optional[str]
    password_hash: str
    saras_user_id: Optional[str] = None
    saras_token: Optional[str] = None
    saras_token_expires_at: Optional[datetime] = None
    is_active: bool = True
