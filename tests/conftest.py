"""Shared fixtures: in-memory store, controllable clock and a fake channel adapter."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from src.business.config.push_config import PushConfig
from src.business.notification.channels.base import (
    ChannelAdapter,
    ChannelMessage,
    Credentials,
    FollowStatus,
    OAuthIdentity,
    SendResult,
    SendStatus,
    ValidateResult,
)
from src.business.errors import UpstreamError
from src.business.service import PushService
from src.data.store.memory_store import MemoryStore


class FakeClock:
    """Mutable UTC clock usable both as a datetime and an epoch-seconds source."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def timestamp(self) -> float:
        return self.now.timestamp()

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeChannel(ChannelAdapter):
    """Records every send; fails for selected users."""

    def __init__(self) -> None:
        self.sent: list[ChannelMessage] = []
        self.fail_for: set[str] = set()
        self.not_following: set[str] = set()
        self.oauth_codes: dict[str, str] = {}
        self.nicknames: dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def type(self) -> str:
        return "wechat"

    @property
    def name(self) -> str:
        return "fake"

    def send(self, message: ChannelMessage, credentials: Credentials) -> SendResult:
        with self._lock:
            self.sent.append(message)
        if message.platform_user_id in self.fail_for:
            return SendResult(status=SendStatus.FAILED, error="43004: require subscribe")
        return SendResult(status=SendStatus.SUCCESS, message_id=f"msg-{message.platform_user_id}")

    def validate(self, credentials: Credentials) -> ValidateResult:
        return ValidateResult(valid=credentials.is_complete)

    def check_follow_status(self, credentials: Credentials, platform_user_id: str) -> FollowStatus:
        return FollowStatus(
            subscribed=platform_user_id not in self.not_following,
            nickname=self.nicknames.get(platform_user_id),
        )

    def exchange_oauth_code(self, credentials: Credentials, code: str) -> OAuthIdentity:
        if code not in self.oauth_codes:
            raise UpstreamError("40029: invalid code")
        return OAuthIdentity(platform_user_id=self.oauth_codes[code])

    def build_authorize_url(self, app_id: str, redirect_uri: str, state: str, scope: str) -> str:
        return f"https://auth.example/authorize?appid={app_id}&state={state}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return MemoryStore(clock=clock.timestamp)


@pytest.fixture
def fake_channel():
    return FakeChannel()


@pytest.fixture
def service(store, fake_channel, clock):
    config = PushConfig.from_dict({"binding": {"callback_base_url": "https://push.example"}})
    return PushService(config, store=store, adapters=[fake_channel], clock=clock)
