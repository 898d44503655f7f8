"""Channel data model."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from src.engine.keys import mask_credential
from src.engine.rate_limit import parse_timestamp, utcnow


class ChannelType(str, Enum):
    """Upstream messaging platform integrations."""

    WECHAT = "wechat"


@dataclass
class ChannelConfig:
    """Credentials for one upstream account."""

    app_id: str = ""
    app_secret: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.app_id and self.app_secret)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"app_id": self.app_id, "app_secret": self.app_secret}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ChannelConfig":
        """Create instance from dictionary."""
        data = data or {}
        return cls(
            app_id=data.get("app_id", "") or "",
            app_secret=data.get("app_secret", "") or "",
        )


@dataclass
class Channel:
    """An upstream platform account that push targets deliver through.

    ``config.app_secret`` must never leave the system unmasked; use
    :meth:`masked` before rendering.
    """

    id: str
    name: str
    type: str = ChannelType.WECHAT.value
    config: ChannelConfig = field(default_factory=ChannelConfig)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def masked(self) -> "Channel":
        """Copy with the secret masked."""
        return replace(
            self,
            config=ChannelConfig(
                app_id=self.config.app_id,
                app_secret=mask_credential(self.config.app_secret),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "config": self.config.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Channel":
        """Create instance from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            type=data.get("type", ChannelType.WECHAT.value),
            config=ChannelConfig.from_dict(data.get("config")),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
        )
