"""Recipient (bound platform identity) data model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.engine.rate_limit import parse_timestamp, utcnow


@dataclass
class Recipient:
    """A platform user attached to a push target.

    Unique per ``(target_id, platform_user_id)``.
    """

    id: str
    target_id: str
    platform_user_id: str  # upstream OpenID
    nickname: str | None = None
    remark: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        result = {
            "id": self.id,
            "target_id": self.target_id,
            "platform_user_id": self.platform_user_id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if self.nickname:
            result["nickname"] = self.nickname
        if self.remark:
            result["remark"] = self.remark
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recipient":
        """Create instance from dictionary."""
        return cls(
            id=data["id"],
            target_id=data["target_id"],
            platform_user_id=data["platform_user_id"],
            nickname=data.get("nickname"),
            remark=data.get("remark"),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
        )
