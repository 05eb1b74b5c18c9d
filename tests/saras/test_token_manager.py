from __future__ import annotations

import json
from datetime import datetime, timedelta

import pytest
import requests

from track_ai.saras.exceptions import SarasAuthFailed, SarasTimeout, SarasUnavailable
from track_ai.saras.token_cache import InMemoryTokenCache
from track_ai.saras.token_manager import ServiceAccountTokenManager, UserTokenManager
from track_ai.users.model import User


class FakeResponse:
    def __init__(self, status_code: int, body=None):
        self.status_code = status_code
        self.content = json.dumps(body).encode() if body is not None else b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        return json.loads(self.content)


class LoginSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.posts: list[dict] = []

    def post(self, url, *, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class Clock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _manager(session, clock):
    return ServiceAccountTokenManager(
        InMemoryTokenCache(clock=clock),
        base_url="https://saras.example/api/",
        client_id="svc",
        client_secret="secret",
        cache_key="saras:token",
        timeout=5,
        session=session,
        clock=clock,
    )


def test_token_is_fetched_once_and_reused_from_cache():
    clock = Clock()
    session = LoginSession(FakeResponse(200, {"access_token": "tok-1", "expires_in": 3600}))
    manager = _manager(session, clock)

    assert manager.get_access_token() == "tok-1"
    assert manager.get_access_token() == "tok-1"
    assert len(session.posts) == 1
    assert session.posts[0]["url"] == "https://saras.example/api/users/userLogin"
    assert session.posts[0]["json"] == {"client_id": "svc", "client_secret": "secret"}


def test_token_is_refreshed_sixty_seconds_before_upstream_expiry():
    clock = Clock()
    session = LoginSession(
        FakeResponse(200, {"access_token": "tok-1", "expires_in": 3600}),
        FakeResponse(200, {"token": "tok-2", "expiresIn": 3600}),
    )
    manager = _manager(session, clock)
    manager.get_access_token()

    clock.now += 3600 - 61
    assert manager.get_access_token() == "tok-1"

    clock.now += 1
    assert manager.get_access_token() == "tok-2"
    assert len(session.posts) == 2


def test_invalidate_forces_a_new_login():
    clock = Clock()
    session = LoginSession(
        FakeResponse(200, {"access_token": "tok-1", "expires_in": 3600}),
        FakeResponse(200, {"access_token": "tok-2", "expires_in": 3600}),
    )
    manager = _manager(session, clock)
    manager.get_access_token()

    manager.invalidate_token()

    assert not manager.has_cached_token()
    assert manager.get_access_token() == "tok-2"


def test_rejected_credentials_raise_auth_failed():
    manager = _manager(LoginSession(FakeResponse(401, {"message": "bad credentials"})), Clock())

    with pytest.raises(SarasAuthFailed) as exc:
        manager.get_access_token()
    assert exc.value.status_code == 401
    assert exc.value.message == "bad credentials"


def test_missing_token_in_body_raises_auth_failed():
    manager = _manager(LoginSession(FakeResponse(200, {"expires_in": 3600})), Clock())

    with pytest.raises(SarasAuthFailed):
        manager.get_access_token()


def test_transport_failures_map_to_typed_errors():
    manager = _manager(LoginSession(requests.Timeout(), requests.ConnectionError(), requests.exceptions.ChunkedEncodingError("reset")), Clock())

    with pytest.raises(SarasTimeout):
        manager.get_access_token()
    with pytest.raises(SarasUnavailable):
        manager.get_access_token()
    with pytest.raises(SarasUnavailable) as exc:
        manager.get_access_token()
    assert exc.value.message == "reset"


class InMemoryUsers:
    def __init__(self, user: User):
        self.user = user

    def get_by_id(self, user_id):
        return self.user if user_id == self.user.user_id else None

    def clear_saras_token(self, user_id):
        self.user = User(
            user_id=self.user.user_id,
            name=self.user.name,
            username=self.user.username,
            email=self.user.email,
            password_hash=self.user.password_hash,
        )


def _user(token=None, expires_at=None) -> User:
    return User(
        user_id=3,
        name="Juan",
        username="juan@example.com",
        email="juan@example.com",
        password_hash="x",
        saras_token=token,
        saras_token_expires_at=expires_at,
    )


def test_user_token_is_returned_until_stored_expiry():
    now = datetime(2026, 3, 2, 9, 0)
    users = InMemoryUsers(_user("user-tok", now + timedelta(minutes=5)))
    manager = UserTokenManager(users, lambda: 3, clock=lambda: now)

    assert manager.get_access_token() == "user-tok"
    assert manager.has_cached_token()


def test_user_token_never_refreshes_on_expiry():
    now = datetime(2026, 3, 2, 9, 0)
    users = InMemoryUsers(_user("user-tok", now))
    manager = UserTokenManager(users, lambda: 3, clock=lambda: now)

    with pytest.raises(SarasAuthFailed):
        manager.get_access_token()


def test_user_token_requires_an_authenticated_user():
    manager = UserTokenManager(InMemoryUsers(_user("user-tok", datetime.max)), lambda: None)

    with pytest.raises(SarasAuthFailed):
        manager.get_access_token()


def test_invalidating_user_token_clears_it():
    now = datetime(2026, 3, 2, 9, 0)
    users = InMemoryUsers(_user("user-tok", now + timedelta(hours=1)))
    manager = UserTokenManager(users, lambda: 3, clock=lambda: now)

    manager.invalidate_token()

    assert users.user.saras_token is None
    assert not manager.has_cached_token()
