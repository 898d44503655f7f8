"""OAuth state token model."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.engine.rate_limit import parse_timestamp, utcnow


class BindKind(str, Enum):
    """Intent carried by a state token."""

    BIND = "bind"  # single-recipient target
    SUBSCRIBE = "subscribe"  # fan-out target


@dataclass
class BindState:
    """Ephemeral, single-use state stored under a random token with a TTL."""

    token: str
    kind: BindKind
    target_id: str
    issued_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "token": self.token,
            "kind": self.kind.value,
            "target_id": self.target_id,
            "issued_at": self.issued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BindState":
        """Create instance from dictionary."""
        return cls(
            token=data["token"],
            kind=BindKind(data["kind"]),
            target_id=data["target_id"],
            issued_at=parse_timestamp(data.get("issued_at")) or utcnow(),
        )
