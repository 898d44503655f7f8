"""In-process store used for tests and single-process deployments."""

from __future__ import annotations

import copy
import json
import logging
import time
from bisect import bisect_right
from threading import Lock
from typing import Any, Callable

from src.data.store.base import DEFAULT_LIST_LIMIT, ListResult, Store

logger = logging.getLogger(__name__)


class MemoryStore(Store):
    """Thread-safe dictionary store with lazy TTL expiry.

    Values are deep-copied on the way in and out so callers never share
    mutable state with the store. Keys list in lexicographic order; the cursor
    is the last key of the previous page.

    Args:
        clock: Returns the current time in epoch seconds. Injectable so tests
            can expire state tokens without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._data: dict[str, Any] = {}
        self._expires: dict[str, float] = {}
        self._clock = clock
        self._lock = Lock()

    def _expired(self, key: str) -> bool:
        expires_at = self._expires.get(key)
        return expires_at is not None and self._clock() >= expires_at

    def _evict(self, key: str) -> None:
        self._data.pop(key, None)
        self._expires.pop(key, None)

    def get(self, key: str) -> Any | None:
        with self._lock:
            if key not in self._data:
                return None
            if self._expired(key):
                self._evict(key)
                return None
            return copy.deepcopy(self._data[key])

    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        # round-trip through JSON so memory behaves like a real backend
        stored = json.loads(json.dumps(value))
        with self._lock:
            self._data[key] = stored
            if ttl:
                self._expires[key] = self._clock() + ttl
            else:
                self._expires.pop(key, None)

    def delete(self, key: str) -> None:
        with self._lock:
            self._evict(key)

    def take(self, key: str) -> Any | None:
        with self._lock:
            if key not in self._data:
                return None
            if self._expired(key):
                self._evict(key)
                return None
            value = self._data.pop(key)
            self._expires.pop(key, None)
            return value

    def update(
        self,
        key: str,
        fn: Callable[[Any | None], Any],
        ttl: int | None = None,
    ) -> Any:
        with self._lock:
            if key in self._data and self._expired(key):
                self._evict(key)
            current = copy.deepcopy(self._data.get(key))
            stored = json.loads(json.dumps(fn(current)))
            self._data[key] = stored
            if ttl:
                self._expires[key] = self._clock() + ttl
            else:
                self._expires.pop(key, None)
            return copy.deepcopy(stored)

    def list(
        self,
        prefix: str = "",
        limit: int = DEFAULT_LIST_LIMIT,
        cursor: str | None = None,
    ) -> ListResult:
        with self._lock:
            for key in [k for k in self._data if self._expired(k)]:
                self._evict(key)
            keys = sorted(k for k in self._data if k.startswith(prefix))

        start = bisect_right(keys, cursor) if cursor else 0
        page = keys[start:start + limit]
        complete = start + limit >= len(keys)
        return ListResult(
            keys=page,
            complete=complete,
            cursor=None if complete or not page else page[-1],
        )

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for k in self._data if not self._expired(k))
