"""Storage capability and its implementations."""

from src.data.store.base import ListResult, Store, StoreError
from src.data.store.memory_store import MemoryStore

__all__ = [
    "ListResult",
    "Store",
    "StoreError",
    "MemoryStore",
]
