"""Tests for TargetRegistry"""

import pytest

from src.business.errors import NotFoundError, ValidationError
from src.business.registry import store_keys
from src.business.registry.channel_registry import ChannelRegistry
from src.business.registry.target_registry import TargetRegistry
from src.data.models.target import MessageType, PushMode
from src.engine.codes import ResultCode
from src.engine.keys import is_valid_push_key
from src.engine.rate_limit import RateWindow


class TestTargetRegistry:
    """PushTarget CRUD and key index"""

    @pytest.fixture
    def channel(self, store):
        return ChannelRegistry(store).create("公众号", "wx123", "secret")

    @pytest.fixture
    def targets(self, store):
        return TargetRegistry(store)

    def test_create_round_trip(self, targets, channel):
        target = targets.create("alerts", channel.id, PushMode.SUBSCRIBE)

        assert is_valid_push_key(target.key)
        assert targets.get_by_id(target.id) == target
        assert targets.get_by_key(target.key) == target
        assert [t.id for t in targets.list()] == [target.id]

    def test_keys_are_unique(self, targets, channel):
        keys = {targets.create(f"app{i}", channel.id).key for i in range(20)}
        assert len(keys) == 20

    def test_string_enums_accepted(self, targets, channel):
        target = targets.create("t", channel.id, "subscribe", "template", template_id="tpl")
        assert target.push_mode == PushMode.SUBSCRIBE
        assert target.message_type == MessageType.TEMPLATE

    def test_invalid_mode(self, targets, channel):
        with pytest.raises(ValidationError):
            targets.create("t", channel.id, "broadcast")

    def test_template_requires_template_id(self, targets, channel):
        with pytest.raises(ValidationError):
            targets.create("t", channel.id, message_type=MessageType.TEMPLATE)

    def test_missing_channel(self, targets):
        with pytest.raises(NotFoundError) as exc:
            targets.create("t", "ch_0000000000000000")
        assert exc.value.code == ResultCode.CHANNEL_NOT_FOUND

    def test_get_by_key_rejects_malformed_and_unknown(self, targets, channel):
        targets.create("t", channel.id)
        assert targets.get_by_key("not-a-key") is None
        assert targets.get_by_key("APK" + "z" * 29) is None

    def test_stale_index_returns_none(self, store, targets, channel):
        target = targets.create("t", channel.id)
        store.delete(store_keys.target(target.id))
        assert targets.get_by_key(target.key) is None

    def test_mismatched_index_returns_none(self, store, targets, channel):
        first = targets.create("a", channel.id)
        second = targets.create("b", channel.id)
        store.put(store_keys.target_index(first.key), second.id)
        assert targets.get_by_key(first.key) is None

    def test_update(self, targets, channel):
        target = targets.create("old", channel.id)
        targets.update(target.id, name="new")
        fetched = targets.get_by_id(target.id)
        assert fetched.name == "new"
        assert fetched.key == target.key

    def test_update_cannot_clear_required_template(self, targets, channel):
        target = targets.create("t", channel.id, message_type="template", template_id="tpl")
        with pytest.raises(ValidationError):
            targets.update(target.id, template_id="")

    def test_save_rate_window(self, targets, channel, clock):
        target = targets.create("t", channel.id)
        window = RateWindow(count=3, reset_at=clock())
        targets.save_rate_window(target.id, window)
        assert targets.get_by_id(target.id).rate_window == window

    def test_delete_cascades_recipients(self, store, targets, channel):
        target = targets.create("t", channel.id, PushMode.SUBSCRIBE)
        other = targets.create("other", channel.id, PushMode.SUBSCRIBE)
        r1 = targets.recipients.create(target.id, "u1")
        targets.recipients.create(target.id, "u2")
        kept = targets.recipients.create(other.id, "u1")
        assert targets.count_recipients(target.id) == 2

        removed = targets.delete(target.id)

        assert removed == 2
        assert targets.get_by_id(target.id) is None
        assert targets.get_by_key(target.key) is None
        assert [t.id for t in targets.list()] == [other.id]
        assert targets.recipients.get_by_id(r1.id) is None
        assert store.get(store_keys.recipient_index(target.id, "u1")) is None
        assert targets.recipients.list_by_target(other.id) == [kept]

    def test_delete_missing(self, targets):
        with pytest.raises(NotFoundError) as exc:
            targets.delete("app_missing")
        assert exc.value.code == ResultCode.APP_NOT_FOUND

    def test_verify_detects_and_repairs(self, store, targets, channel):
        target = targets.create("t", channel.id)
        store.delete(store_keys.target_index(target.key))
        store.put(store_keys.target_index("APK" + "q" * 29), "app_ghost")

        report = targets.verify(repair=True)

        assert report.stale_index_keys == [store_keys.target_index("APK" + "q" * 29)]
        assert report.unindexed_ids == [target.id]
        assert report.repaired
        assert store.get(store_keys.target_index("APK" + "q" * 29)) is None
        assert targets.get_by_key(target.key) == target
        assert targets.verify().is_consistent
