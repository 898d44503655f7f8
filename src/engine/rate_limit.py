"""Fixed-window rate limiting.

The limiter is pure: it reads a window, returns a decision plus the window the
caller must persist. Persisting the new window is the caller's job, which keeps
the allow decision and the write in the same place.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

DEFAULT_PERIOD_SECONDS = 60
DEFAULT_LIMIT = 5


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class RateWindow:
    """Counter for one fixed window.

    Attributes:
        count: Requests accepted inside the window.
        reset_at: End of the window (exclusive). ``None`` means no window yet.
    """

    count: int = 0
    reset_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "count": self.count,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RateWindow":
        """Create instance from dictionary."""
        if not data:
            return cls()
        return cls(
            count=int(data.get("count", 0) or 0),
            reset_at=parse_timestamp(data.get("reset_at")),
        )


@dataclass
class RateDecision:
    """Outcome of a rate-limit check."""

    allowed: bool
    remaining: int
    reset_at: datetime
    next_window: RateWindow


class RateLimiter:
    """Fixed-window (not sliding) counter.

    Usage:
        limiter = RateLimiter(limit=5)
        decision = limiter.check(target.rate_window)
        if decision.allowed:
            target.rate_window = decision.next_window
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        period_seconds: int = DEFAULT_PERIOD_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        if period_seconds < 1:
            raise ValueError(f"period_seconds must be positive, got {period_seconds}")
        self.limit = limit
        self.period = timedelta(seconds=period_seconds)
        self._clock = clock

    def check(self, window: RateWindow | None, limit: int | None = None) -> RateDecision:
        """Decide whether one more request fits in ``window``.

        Args:
            window: Current window state (None is treated as expired).
            limit: Override for the configured limit.

        Returns:
            RateDecision; on denial ``next_window`` is the unchanged window.
        """
        limit = self.limit if limit is None else limit
        now = self._clock()
        window = window or RateWindow()

        # 窗口过期，重置
        if window.reset_at is None or now >= window.reset_at:
            reset_at = now + self.period
            return RateDecision(
                allowed=True,
                remaining=limit - 1,
                reset_at=reset_at,
                next_window=RateWindow(count=1, reset_at=reset_at),
            )

        if window.count < limit:
            return RateDecision(
                allowed=True,
                remaining=limit - window.count - 1,
                reset_at=window.reset_at,
                next_window=RateWindow(count=window.count + 1, reset_at=window.reset_at),
            )

        return RateDecision(
            allowed=False,
            remaining=0,
            reset_at=window.reset_at,
            next_window=window,
        )
