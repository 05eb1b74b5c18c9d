from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import SarasMode
from .exceptions import SarasApiError
from .token_manager import TokenManager


@dataclass(frozen=True)
class SarasHealth:
    mode: str
    healthy: bool
    message: str
    error_type: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"mode": self.mode, "healthy": self.healthy, "message": self.message}
        if self.error_type:
            data["error_type"] = self.error_type
        return data


class SarasStatusService:
    def __init__(self, token_manager: Optional[TokenManager], *, mode: SarasMode, enabled: bool = True):
        self._token_manager = token_manager
        self._mode = mode
        self._enabled = bool(enabled)

    def status(self) -> SarasHealth:
        """Cheap check: looks at the token cache only, never authenticates."""

        if self._mode == SarasMode.STUB:
            return SarasHealth(mode="stub", healthy=True, message="Using stub responses")
        if not self._enabled:
            return SarasHealth(mode="disabled", healthy=False, message="Saras integration is disabled")

        has_token = self._token_manager is not None and self._token_manager.has_cached_token()
        return SarasHealth(
            mode="live",
            healthy=has_token,
            message="Connected to Saras" if has_token else "Token not cached, will authenticate on next request",
        )

    def health_check(self) -> SarasHealth:
        """Forces a token fetch against the live API."""

        if self._mode == SarasMode.STUB:
            return SarasHealth(mode="stub", healthy=True, message="Stub mode - no actual connection")
        if self._token_manager is None:
            return SarasHealth(mode="live", healthy=False, message="No token manager configured")

        try:
            self._token_manager.get_access_token()
        except SarasApiError as e:
            return SarasHealth(mode="live", healthy=False, message=e.message, error_type=e.type.value)
        return SarasHealth(mode="live", healthy=True, message="Successfully authenticated with Saras")
