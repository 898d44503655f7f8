"""End-to-end tests for PushService"""

import pytest

from src.business.config.push_config import PushConfig
from src.business.errors import ConflictError
from src.business.registry import store_keys
from src.business.service import PushService, build_store, parse_webhook_path
from src.data.models.delivery import Direction
from src.data.store.memory_store import MemoryStore
from src.engine.codes import ResultCode

KEY = "APK" + "b" * 29


class TestParseWebhookPath:
    """``/<KEY>.send`` paths"""

    @pytest.mark.parametrize("path,expected", [
        (f"/{KEY}.send", KEY),
        (f"{KEY}.send", KEY),
        (f"/{KEY}.send?title=hi", KEY),
        (f"/{KEY}", None),
        (f"/a/{KEY}.send", None),
        ("/.send", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, path, expected):
        assert parse_webhook_path(path) == expected


class TestPushService:
    """Whole-system scenarios"""

    def test_default_store_is_memory(self):
        assert isinstance(build_store(PushConfig()), MemoryStore)

    def test_injected_empty_store_is_kept(self, fake_channel):
        store = MemoryStore()
        service = PushService(store=store, adapters=[fake_channel])

        assert service.store is store
        service.channels.create("公众号", "wx123", "secret")
        assert store.list_all(store_keys.CHANNEL_PREFIX)

    def test_subscribe_scenario(self, service, fake_channel):
        channel = service.channels.create("公众号", "wx123", "secret")
        topic = service.targets.create("deploys", channel.id, "subscribe")

        for user in ("alice", "bob", "carol"):
            reply = service.binding.handle_inbound_command(channel.id, user, f"订阅 {topic.key}")
            assert reply.code == ResultCode.SUCCESS
        fake_channel.fail_for = {"bob"}

        result = service.push_by_path(f"/{topic.key}.send", "v1.2.3 已上线", "changelog")

        assert result.code == ResultCode.SUCCESS
        assert (result.total, result.success_count, result.failed_count) == (3, 2, 1)

        outbound = service.history.list(direction=Direction.OUTBOUND)
        assert [r.id for r in outbound.items] == [result.push_id]
        assert service.history.list(target_id=topic.id).total == 4

        with pytest.raises(ConflictError) as exc_info:
            service.channels.delete(channel.id)
        assert exc_info.value.code == ResultCode.CHANNEL_IN_USE

        assert service.targets.delete(topic.id) == 3
        assert service.push_by_key(topic.key, "again").code == ResultCode.KEY_NOT_FOUND
        service.channels.delete(channel.id)
        assert service.channels.list() == []

    def test_single_bind_scenario(self, service, fake_channel, clock):
        channel = service.channels.create("公众号", "wx123", "secret")
        target = service.targets.create("me", channel.id)
        fake_channel.oauth_codes["CODE"] = "oME"

        assert service.push_by_key(target.key, "hi").code == ResultCode.OPENID_NOT_FOUND

        redirect = service.binding.issue_bind_redirect(target.key)
        service.binding.handle_callback(target.id, "CODE", redirect.state)

        for _ in range(5):
            assert service.push_by_key(target.key, "hi").success_count == 1
        assert service.push_by_key(target.key, "hi").code == ResultCode.RATE_LIMIT_EXCEEDED

        clock.advance(60 * 60 * 24 * 31)
        assert service.prune_history() == 5
        assert service.history.stats().total == 0

    def test_push_by_bad_path(self, service):
        assert service.push_by_path("/nothing", "t").code == ResultCode.KEY_NOT_FOUND

    def test_verify_after_interrupted_delete(self, service, store):
        channel = service.channels.create("公众号", "wx123", "secret")
        target = service.targets.create("t", channel.id, "subscribe")
        service.recipients.create(target.id, "u1")
        store.delete(store_keys.target(target.id))

        report = service.targets.verify(repair=True)
        assert not report.is_consistent
        assert target.id in report.dangling_ids
        assert service.targets.verify().is_consistent

    def test_constructs_without_explicit_store(self):
        service = PushService(PushConfig(), adapters=[])
        assert service.channel_dispatch.supported_types() == []
        assert isinstance(service.store, MemoryStore)
