"""Push target data model.

A push target (called an "app" in the admin surface) is what an opaque push
key resolves to. Legacy single-recipient keys and fan-out topics are both
expressed through :class:`PushMode`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.engine.rate_limit import RateWindow, parse_timestamp, utcnow


class PushMode(str, Enum):
    """How a push is routed to bound recipients."""

    SINGLE = "single"  # first bound recipient only
    SUBSCRIBE = "subscribe"  # fan-out to every subscriber


class MessageType(str, Enum):
    """Upstream message format."""

    NORMAL = "normal"  # plain text
    TEMPLATE = "template"


@dataclass
class PushTarget:
    """Registry entity identified externally by ``key``.

    Attributes:
        id: Internal record id (``app_`` prefix).
        key: Opaque push key, globally unique and immutable.
        name: Display name.
        channel_id: Owning channel.
        push_mode: Single recipient or fan-out.
        message_type: Plain or template message.
        template_id: Required when ``message_type`` is template.
        rate_window: Fixed-window counter for this key.
    """

    id: str
    key: str
    name: str
    channel_id: str
    push_mode: PushMode = PushMode.SINGLE
    message_type: MessageType = MessageType.NORMAL
    template_id: str | None = None
    rate_window: RateWindow = field(default_factory=RateWindow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_fan_out(self) -> bool:
        return self.push_mode == PushMode.SUBSCRIBE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        result = {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "channel_id": self.channel_id,
            "push_mode": self.push_mode.value,
            "message_type": self.message_type.value,
            "rate_window": self.rate_window.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.template_id:
            result["template_id"] = self.template_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PushTarget":
        """Create instance from dictionary."""
        return cls(
            id=data["id"],
            key=data["key"],
            name=data["name"],
            channel_id=data["channel_id"],
            push_mode=PushMode(data.get("push_mode", PushMode.SINGLE.value)),
            message_type=MessageType(data.get("message_type", MessageType.NORMAL.value)),
            template_id=data.get("template_id"),
            rate_window=RateWindow.from_dict(data.get("rate_window")),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
        )
