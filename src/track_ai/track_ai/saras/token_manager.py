"""Bearer-token supply for live Saras requests.

Two strategies, chosen once in `container.build_container`:

* `ServiceAccountTokenManager` logs in with configured client credentials and
  caches the token until shortly before it expires.
* `UserTokenManager` uses the token stored on the signed-in user at login.
  It never refreshes on its own; an expired token means the user logs in again.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import nullcontext
from datetime import datetime
from typing import Callable, Optional, Protocol

import requests

from ..core.constants import DEFAULT_TOKEN_TTL_SECONDS, TOKEN_EXPIRY_BUFFER_SECONDS
from ..users.repository import UserRepository
from .dto import LoginResponse
from .exceptions import LOGIN_ENDPOINT, SarasAuthFailed, SarasTimeout, SarasUnavailable
from .token_cache import TokenCache

logger = logging.getLogger(__name__)


class TokenManager(Protocol):
    def get_access_token(self) -> str:
        raise NotImplementedError

    def invalidate_token(self) -> None:
        raise NotImplementedError

    def has_cached_token(self) -> bool:
        raise NotImplementedError


def request_login(
    session: requests.Session,
    *,
    base_url: str,
    client_id: str,
    client_secret: str,
    timeout: float,
) -> LoginResponse:
    """POST /users/userLogin and return the parsed token envelope.

    Raises `SarasAuthFailed` for a non-2xx answer or a body without a token,
    `SarasUnavailable`/`SarasTimeout` when the server cannot be reached.
    """

    request_id = str(uuid.uuid4())
    logger.info("Saras API: requesting access token request_id=%s endpoint=%s", request_id, LOGIN_ENDPOINT)

    try:
        resp = session.post(
            base_url.rstrip("/") + LOGIN_ENDPOINT,
            json={"client_id": client_id, "client_secret": client_secret},
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except requests.Timeout as e:
        logger.error("Saras API: login timed out request_id=%s", request_id)
        raise SarasTimeout(LOGIN_ENDPOINT) from e
    except requests.ConnectionError as e:
        logger.error("Saras API: connection failed during login request_id=%s error=%s", request_id, e)
        raise SarasUnavailable(LOGIN_ENDPOINT, "Connection failed") from e
    except requests.RequestException as e:
        logger.error("Saras API: login request failed request_id=%s error=%s", request_id, e)
        raise SarasUnavailable(LOGIN_ENDPOINT, str(e) or "Request failed") from e

    try:
        data = resp.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}

    if not resp.ok:
        logger.error("Saras API: authentication failed request_id=%s status=%s", request_id, resp.status_code)
        raise SarasAuthFailed(
            data.get("message") or f"Authentication failed with status {resp.status_code}",
            status_code=resp.status_code,
        )

    login = LoginResponse.from_dict(data, default_expires_in=DEFAULT_TOKEN_TTL_SECONDS)
    if not login.access_token:
        logger.error("Saras API: no access token in response request_id=%s", request_id)
        raise SarasAuthFailed("No access token in response")

    logger.info("Saras API: token obtained request_id=%s expires_in_seconds=%s", request_id, login.expires_in)
    return login


class ServiceAccountTokenManager:
    def __init__(
        self,
        cache: TokenCache,
        *,
        base_url: str,
        client_id: str,
        client_secret: str,
        cache_key: str,
        timeout: float,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._cache = cache
        self._base_url = base_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._cache_key = cache_key
        self._timeout = timeout
        self._session = session or requests.Session()
        self._clock = clock

    def get_access_token(self) -> str:
        # Read-check-refresh runs under the cache lock when the cache offers one.
        with getattr(self._cache, "lock", None) or nullcontext():
            cached = self._cache.get(self._cache_key)
            if cached and cached.get("access_token") and cached.get("expires_at") is not None:
                if self._clock() < float(cached["expires_at"]):
                    return str(cached["access_token"])
            return self._fetch_new_token()

    def invalidate_token(self) -> None:
        self._cache.delete(self._cache_key)

    def _fetch_new_token(self) -> str:
        login = request_login(
            self._session,
            base_url=self._base_url,
            client_id=self._client_id,
            client_secret=self._client_secret,
            timeout=self._timeout,
        )
        expires_at = self._clock() + login.expires_in - TOKEN_EXPIRY_BUFFER_SECONDS
        ttl_seconds = max(login.expires_in - TOKEN_EXPIRY_BUFFER_SECONDS, TOKEN_EXPIRY_BUFFER_SECONDS)
        self._cache.set(
            self._cache_key,
            {"access_token": login.access_token, "expires_at": expires_at},
            ttl_seconds,
        )
        return str(login.access_token)

    def has_cached_token(self) -> bool:
        cached = self._cache.get(self._cache_key)
        return bool(cached and cached.get("access_token"))


class UserTokenManager:
    def __init__(
        self,
        users: UserRepository,
        current_user_id: Callable[[], Optional[int]],
        *,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._users = users
        self._current_user_id = current_user_id
        self._clock = clock

    def get_access_token(self) -> str:
        user_id = self._current_user_id()
        if user_id is None:
            raise SarasAuthFailed("No authenticated user. Please log in again.")

        user = self._users.get_by_id(int(user_id))
        if not user or not user.saras_token:
            raise SarasAuthFailed("No Saras token found. Please log in again.")

        # The buffer was applied when the expiry was stored at login.
        if user.saras_token_expires_at is None or self._clock() >= user.saras_token_expires_at:
            raise SarasAuthFailed("Saras session expired. Please log in again.")

        return user.saras_token

    def invalidate_token(self) -> None:
        user_id = self._current_user_id()
        if user_id is not None:
            self._users.clear_saras_token(int(user_id))

    def has_cached_token(self) -> bool:
        try:
            self.get_access_token()
        except SarasAuthFailed:
            return False
        return True
