"""
Registry Base - 注册表基础设施

Records live under a primary key, lookups by natural key go through a
secondary index (natural key -> id), and listings go through an id-list
index. Id lists are rewritten with the store's atomic ``update`` so concurrent
appends never drop entries. Records and indices span several keys, so each
create/delete is a short sequence of writes:

- create: primary record, then secondary index, then id list. Until the index
  write lands, lookup-by-key returns "not found"; it never returns partial data.
- delete: secondary index, then primary record, then id list. Listings skip
  ids whose record is already gone.

``verify`` walks the indices and reports (optionally repairs) anything left
behind by an interrupted sequence.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from src.data.store.base import Store, StoreError
from src.engine.rate_limit import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class VerifyReport:
    """Result of an index consistency check."""

    dangling_ids: list[str] = field(default_factory=list)  # in a list, no record
    stale_index_keys: list[str] = field(default_factory=list)  # index -> missing/mismatched record
    unlisted_ids: list[str] = field(default_factory=list)  # record, not in any list
    unindexed_ids: list[str] = field(default_factory=list)  # record, secondary index missing
    repaired: bool = False

    @property
    def is_consistent(self) -> bool:
        return not (
            self.dangling_ids or self.stale_index_keys or self.unlisted_ids or self.unindexed_ids
        )


class BaseRegistry:
    """Shared store helpers for the keyed registries."""

    def __init__(self, store: Store, clock: Callable[[], Any] = utcnow) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> Store:
        return self._store

    def _now(self):
        return self._clock()

    def _load(self, key: str, factory: Callable[[dict[str, Any]], T]) -> T | None:
        data = self._store.get(key)
        if not data:
            return None
        return factory(data)

    def _get_list(self, list_key: str) -> list[str]:
        return list(self._store.get(list_key) or [])

    def _append_to_list(self, list_key: str, item_id: str, front: bool = False) -> None:
        def mutate(current: list[str] | None) -> list[str]:
            ids = list(current or [])
            if item_id not in ids:
                if front:
                    ids.insert(0, item_id)
                else:
                    ids.append(item_id)
            return ids

        self._store.update(list_key, mutate)

    def _remove_from_list(self, list_key: str, item_ids: str | set[str]) -> None:
        if isinstance(item_ids, str):
            item_ids = {item_ids}
        removed = item_ids
        if self._store.get(list_key) is None:
            return

        def mutate(current: list[str] | None) -> list[str]:
            return [i for i in current or [] if i not in removed]

        self._store.update(list_key, mutate)

    def _safe_delete(self, key: str) -> None:
        """Delete and re-raise store failures with the key attached."""
        try:
            self._store.delete(key)
        except StoreError:
            logger.error(f"Store delete failed: {key}")
            raise
