"""Data layer: entity models and the key-value store capability."""

from src.data.models import Channel, DeliveryRecord, PushTarget, Recipient
from src.data.store import MemoryStore, Store

__all__ = [
    "Channel",
    "DeliveryRecord",
    "PushTarget",
    "Recipient",
    "MemoryStore",
    "Store",
]
