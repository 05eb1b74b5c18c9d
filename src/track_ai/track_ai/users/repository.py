from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Services depend on this interface, not on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_by_login(self, identifier: str) -> Optional[User]:
        """Look up by email or username."""

        raise NotImplementedError

    def create_user(
        self,
        *,
        name: str,
        username: str,
        email: Optional[str],
        password_hash: str,
        saras_user_id: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def update_login(self, user_id: int, *, password_hash: str, saras_user_id: Optional[str]) -> None:
        raise NotImplementedError

    def store_saras_token(self, user_id: int, *, token: str, expires_at: datetime) -> None:
        raise NotImplementedError

    def clear_saras_token(self, user_id: int) -> None:
        raise NotImplementedError
