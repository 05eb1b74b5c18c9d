"""Key/value store with per-entry TTL used to hold the service-account token.

Injected into `ServiceAccountTokenManager` so tests use the in-memory variant
and deployments with several workers share one entry through MySQL.
"""

from __future__ import annotations

import json
import threading
import time
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Protocol

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone


class TokenCache(Protocol):
    def get(self, key: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryTokenCache:
    """Process-local TTL map. `lock` is exposed so callers can make check-then-set one step."""

    def __init__(self, *, clock: Callable[[], float] = time.time):
        self._data: dict[str, tuple[dict[str, Any], float]] = {}
        self._clock = clock
        self.lock = threading.RLock()

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with self.lock:
            entry = self._data.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._data[key]
                return None
            return dict(value)

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        with self.lock:
            self._data[key] = (dict(value), self._clock() + int(ttl_seconds))

    def delete(self, key: str) -> None:
        with self.lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        now = self._clock()
        with self.lock:
            return sum(1 for _, expires_at in self._data.values() if expires_at > now)


class MySQLTokenCache:
    """Shared cache backed by the `token_cache` table."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self.lock = threading.RLock()

    def get(self, key: str) -> Optional[dict[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT cache_value, expires_at
                FROM token_cache
                WHERE cache_key=%s AND expires_at > %s
                """,
                (key, datetime.now()),
            )
            row = fetchone(cur)
            if not row:
                return None
            return json.loads(row["cache_value"])

    def set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        expires_at = datetime.now() + timedelta(seconds=int(ttl_seconds))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO token_cache(cache_key, cache_value, expires_at)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE cache_value=VALUES(cache_value), expires_at=VALUES(expires_at)
                """,
                (key, json.dumps(value), expires_at),
            )

    def delete(self, key: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM token_cache WHERE cache_key=%s", (key,))
