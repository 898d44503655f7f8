"""Redis-backed store.

Values are JSON strings; TTLs map to ``SET ... EX``; prefix listing maps to
``SCAN MATCH prefix*`` with the Redis cursor passed through as the opaque
cursor.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

import redis

from src.data.store.base import DEFAULT_LIST_LIMIT, ListResult, Store, StoreError

logger = logging.getLogger(__name__)


class RedisStore(Store):
    """Store implementation on a Redis server.

    Usage:
        store = RedisStore(host="localhost", port=6379)
        store.put("app:app_1234", {...})
        store.list_all("app:")
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        namespace: str = "keypush:",
        client: Any = None,
    ) -> None:
        """Initialize Redis store.

        Args:
            host: Redis server host.
            port: Redis server port.
            db: Redis database number.
            password: Optional Redis password.
            namespace: Prefix applied to every key so several deployments can
                share a database.
            client: Pre-built client (tests pass a fake here).
        """
        self._namespace = namespace
        self._client = client or redis.Redis(
            host=host,
            port=port,
            db=db,
            password=password,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        logger.info(f"Redis store configured at {host}:{port}/{db}")

    def _k(self, key: str) -> str:
        return f"{self._namespace}{key}"

    def ping(self) -> bool:
        """Check connectivity."""
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def get(self, key: str) -> Any | None:
        try:
            raw = self._client.get(self._k(key))
        except redis.RedisError as e:
            raise StoreError(f"Redis get failed for {key}: {e}") from e
        if raw is None:
            return None
        return json.loads(raw)

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            self._client.set(self._k(key), json.dumps(value), ex=ttl or None)
        except redis.RedisError as e:
            raise StoreError(f"Redis put failed for {key}: {e}") from e
        logger.debug(f"Redis store set: {key} (TTL={ttl})")

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._k(key))
        except redis.RedisError as e:
            raise StoreError(f"Redis delete failed for {key}: {e}") from e

    def take(self, key: str) -> Any | None:
        # GETDEL needs Redis 6.2+
        try:
            raw = self._client.getdel(self._k(key))
        except redis.RedisError as e:
            raise StoreError(f"Redis take failed for {key}: {e}") from e
        if raw is None:
            return None
        return json.loads(raw)

    def update(
        self,
        key: str,
        fn: Callable[[Any | None], Any],
        ttl: int | None = None,
    ) -> Any:
        name = self._k(key)

        def apply(pipe: Any) -> Any:
            raw = pipe.get(name)
            value = fn(json.loads(raw) if raw is not None else None)
            pipe.multi()
            pipe.set(name, json.dumps(value), ex=ttl or None)
            return value

        # WATCH/MULTI; redis-py retries on WatchError
        try:
            return self._client.transaction(apply, name, value_from_callable=True)
        except redis.RedisError as e:
            raise StoreError(f"Redis update failed for {key}: {e}") from e

    def list(
        self,
        prefix: str = "",
        limit: int = DEFAULT_LIST_LIMIT,
        cursor: str | None = None,
    ) -> ListResult:
        try:
            next_cursor, raw_keys = self._client.scan(
                cursor=int(cursor or 0),
                match=f"{self._k(prefix)}*",
                count=limit,
            )
        except redis.RedisError as e:
            raise StoreError(f"Redis scan failed for prefix {prefix}: {e}") from e

        strip = len(self._namespace)
        keys = [k[strip:] for k in raw_keys]
        complete = int(next_cursor) == 0
        return ListResult(
            keys=keys,
            complete=complete,
            cursor=None if complete else str(next_cursor),
        )
