"""Key-value store capability.

Every persistent component talks to storage through :class:`Store`. Values are
JSON-compatible Python objects; ``list`` pages through keys with an opaque
cursor and callers loop until ``complete``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

DEFAULT_LIST_LIMIT = 256


@dataclass
class ListResult:
    """One page of keys."""

    keys: list[str] = field(default_factory=list)
    complete: bool = True
    cursor: str | None = None


class Store(ABC):
    """Abstract key-value store with TTL and prefix listing."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value for ``key`` or None if absent/expired."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store ``value``; ``ttl`` in seconds expires it automatically."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""

    @abstractmethod
    def take(self, key: str) -> Any | None:
        """Atomically return and remove ``key``; None if absent/expired.

        Of several concurrent callers at most one receives the value.
        """

    @abstractmethod
    def update(
        self,
        key: str,
        fn: Callable[[Any | None], Any],
        ttl: int | None = None,
    ) -> Any:
        """Atomically replace the value of ``key`` with ``fn(current)``.

        ``current`` is None when the key is absent. Returns the new value.
        """

    @abstractmethod
    def list(
        self,
        prefix: str = "",
        limit: int = DEFAULT_LIST_LIMIT,
        cursor: str | None = None,
    ) -> ListResult:
        """Return one page of keys starting with ``prefix``."""

    def list_all(self, prefix: str = "") -> list[str]:
        """Enumerate every key with ``prefix`` by following the cursor."""
        keys: list[str] = []
        seen: set[str] = set()
        cursor: str | None = None
        while True:
            page = self.list(prefix, DEFAULT_LIST_LIMIT, cursor)
            # SCAN-style backends may repeat keys across pages
            for key in page.keys:
                if key not in seen:
                    seen.add(key)
                    keys.append(key)
            if page.complete or not page.cursor:
                break
            cursor = page.cursor
        return keys


class StoreError(RuntimeError):
    """Raised when the backing store fails."""
