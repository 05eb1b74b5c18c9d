from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import requests
from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import require_non_empty
from ..core.constants import TOKEN_EXPIRY_BUFFER_SECONDS
from ..core.enums import SarasMode
from ..core.exceptions import AuthenticationError
from ..saras.exceptions import SarasAuthFailed, SarasTimeout, SarasUnavailable
from ..saras.token_manager import request_login
from .model import User
from .repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    name: str
    username: str


class SarasAuthenticator:
    """Use case: log a user in.

    Stub mode checks the local password hash. Live mode authenticates against
    Saras, stores the returned token on the user (this is the only place the
    per-user token is refreshed) and provisions the local user on first login.
    If Saras cannot be reached, live mode falls back to the local check.
    """

    def __init__(
        self,
        users: UserRepository,
        *,
        mode: SarasMode,
        base_url: str = "",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._users = users
        self._mode = mode
        self._base_url = base_url
        self._timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock

    def authenticate(self, identifier: str, password: str) -> SessionUser:
        identifier = require_non_empty(identifier, "email")
        if not password:
            raise AuthenticationError("Invalid credentials")

        if self._mode != SarasMode.LIVE:
            return self._authenticate_locally(identifier, password)

        try:
            login = request_login(
                self._session,
                base_url=self._base_url,
                client_id=identifier,
                client_secret=password,
                timeout=self._timeout,
            )
        except SarasAuthFailed:
            logger.info("Saras authentication rejected for %s", identifier)
            raise AuthenticationError("Invalid credentials")
        except (SarasUnavailable, SarasTimeout):
            logger.warning("Saras unreachable during login, falling back to local authentication")
            return self._authenticate_locally(identifier, password)

        details = self._fetch_user_details(str(login.access_token))
        user = self._get_or_create_user(identifier, password, details)

        expires_at = self._clock() + timedelta(seconds=login.expires_in - TOKEN_EXPIRY_BUFFER_SECONDS)
        self._users.store_saras_token(user.user_id, token=str(login.access_token), expires_at=expires_at)
        return SessionUser(user_id=user.user_id, name=user.name, username=user.username)

    def logout(self, user_id: int) -> None:
        self._users.clear_saras_token(user_id)

    def _authenticate_locally(self, identifier: str, password: str) -> SessionUser:
        user = self._users.get_by_login(identifier)
        if not user or not user.is_active:
            raise AuthenticationError("Invalid credentials")

        try:
            ok = check_password_hash(user.password_hash, password)
        except ValueError:
            # placeholder hashes like 'CHANGE_ME'
            ok = False
        if not ok:
            raise AuthenticationError("Invalid credentials")

        return SessionUser(user_id=user.user_id, name=user.name, username=user.username)

    def _fetch_user_details(self, token: str) -> dict:
        try:
            resp = self._session.get(
                self._base_url.rstrip("/") + "/users/getUserDetails",
                headers={"Accept": "application/json", "Authorization": f"Bearer {token}"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning("Saras user details unavailable after login: %s", e)
            return {}
        if not resp.ok:
            return {}
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _get_or_create_user(self, email: str, password: str, details: dict) -> User:
        password_hash = generate_password_hash(password)
        saras_user_id = str(details["id"]) if details.get("id") else None

        user = self._users.get_by_login(email)
        if user:
            self._users.update_login(user.user_id, password_hash=password_hash, saras_user_id=saras_user_id)
            logger.info("Updated user %s from Saras login", user.user_id)
        else:
            user_id = self._users.create_user(
                name=details.get("name") or _name_from_email(email),
                username=email,
                email=email,
                password_hash=password_hash,
                saras_user_id=saras_user_id,
            )
            logger.info("Provisioned user %s from Saras login saras_user_id=%s", user_id, saras_user_id)

        refreshed = self._users.get_by_login(email)
        if refreshed is None:
            raise AuthenticationError("User provisioning failed")
        return refreshed


def _name_from_email(email: str) -> str:
    local = email.split("@", 1)[0]
    for ch in "._-":
        local = local.replace(ch, " ")
    return local.title()
