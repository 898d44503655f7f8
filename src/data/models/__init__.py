"""Data models for the push registry."""

from src.data.models.bind_state import BindKind, BindState
from src.data.models.channel import Channel, ChannelConfig, ChannelType
from src.data.models.delivery import DeliveryRecord, DeliveryResult, Direction, PushResult
from src.data.models.recipient import Recipient
from src.data.models.target import MessageType, PushMode, PushTarget

__all__ = [
    "BindKind",
    "BindState",
    "Channel",
    "ChannelConfig",
    "ChannelType",
    "DeliveryRecord",
    "DeliveryResult",
    "Direction",
    "PushResult",
    "Recipient",
    "MessageType",
    "PushMode",
    "PushTarget",
]
