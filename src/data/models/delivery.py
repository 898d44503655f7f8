"""Delivery result and history record models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.engine.codes import ResultCode
from src.engine.rate_limit import parse_timestamp, utcnow


class Direction(str, Enum):
    """Message direction relative to the upstream platform."""

    OUTBOUND = "outbound"
    INBOUND = "inbound"


@dataclass
class DeliveryResult:
    """Outcome of one send attempt to one recipient."""

    recipient_id: str
    platform_user_id: str
    success: bool
    external_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "recipient_id": self.recipient_id,
            "platform_user_id": self.platform_user_id,
            "success": self.success,
        }
        if self.external_id is not None:
            result["external_id"] = self.external_id
        if self.error is not None:
            result["error"] = self.error
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryResult":
        """Create instance from dictionary."""
        return cls(
            recipient_id=data.get("recipient_id", ""),
            platform_user_id=data.get("platform_user_id", ""),
            success=bool(data.get("success")),
            external_id=data.get("external_id"),
            error=data.get("error"),
        )


@dataclass
class DeliveryRecord:
    """Append-only history entry for one dispatch (or one inbound message)."""

    id: str
    direction: Direction
    channel_id: str | None
    title: str
    target_id: str | None = None
    body: str | None = None
    results: list[DeliveryResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return self.total - self.success_count

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "direction": self.direction.value,
            "channel_id": self.channel_id,
            "target_id": self.target_id,
            "title": self.title,
            "body": self.body,
            "results": [r.to_dict() for r in self.results],
            "total": self.total,
            "success": self.success_count,
            "failed": self.failed_count,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeliveryRecord":
        """Create instance from dictionary."""
        return cls(
            id=data["id"],
            direction=Direction(data.get("direction", Direction.OUTBOUND.value)),
            channel_id=data.get("channel_id"),
            target_id=data.get("target_id"),
            title=data.get("title", ""),
            body=data.get("body"),
            results=[DeliveryResult.from_dict(r) for r in data.get("results", [])],
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
        )


@dataclass
class PushResult:
    """Aggregate result of one push.

    Invariant: ``success_count + failed_count == total == len(results)``.
    ``code`` is ``SUCCESS`` whenever dispatch ran, even if every recipient
    failed; terminal short-circuits carry the failure code and no results.
    """

    push_id: str
    code: ResultCode = ResultCode.SUCCESS
    results: list[DeliveryResult] = field(default_factory=list)
    error: str | None = None

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_count(self) -> int:
        return self.total - self.success_count

    @property
    def is_success(self) -> bool:
        """Dispatch ran and at least one recipient accepted the message."""
        return self.code == ResultCode.SUCCESS and self.success_count > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "push_id": self.push_id,
            "code": int(self.code),
            "total": self.total,
            "success": self.success_count,
            "failed": self.failed_count,
            "results": [r.to_dict() for r in self.results],
        }
        if self.error:
            result["error"] = self.error
        return result
