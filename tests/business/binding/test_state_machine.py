"""Tests for BindStateMachine"""

import threading
from unittest.mock import MagicMock

import pytest

from src.business.binding.state_machine import BindStateMachine
from src.business.errors import BindingError
from src.data.models.bind_state import BindKind
from src.engine.codes import ResultCode


class TestBindStateMachine:
    """Single-use, expiring state tokens"""

    @pytest.fixture
    def states(self, store, clock):
        return BindStateMachine(store, ttl=300, clock=clock)

    def test_consume_once(self, states):
        state = states.issue(BindKind.SUBSCRIBE, "app_1")

        consumed = states.consume(state.token, "app_1")
        assert consumed.kind == BindKind.SUBSCRIBE
        assert consumed.target_id == "app_1"

        with pytest.raises(BindingError) as exc_info:
            states.consume(state.token, "app_1")
        assert exc_info.value.code == ResultCode.STATE_EXPIRED

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, states, token):
        with pytest.raises(BindingError) as exc_info:
            states.consume(token, "app_1")
        assert exc_info.value.code == ResultCode.INVALID_STATE

    def test_unknown_token(self, states):
        with pytest.raises(BindingError) as exc_info:
            states.consume("deadbeef", "app_1")
        assert exc_info.value.code == ResultCode.STATE_EXPIRED

    def test_expired(self, states, clock):
        state = states.issue(BindKind.BIND, "app_1")
        clock.advance(301)

        with pytest.raises(BindingError) as exc_info:
            states.consume(state.token, "app_1")
        assert exc_info.value.code == ResultCode.STATE_EXPIRED

    def test_valid_just_before_ttl(self, states, clock):
        state = states.issue(BindKind.BIND, "app_1")
        clock.advance(299)
        assert states.consume(state.token, "app_1").target_id == "app_1"

    def test_target_mismatch_keeps_token(self, states):
        state = states.issue(BindKind.BIND, "app_1")

        with pytest.raises(BindingError) as exc_info:
            states.consume(state.token, "app_2")
        assert exc_info.value.code == ResultCode.INVALID_STATE

        assert states.consume(state.token, "app_1").token == state.token

    def test_kind_mismatch(self, states):
        state = states.issue(BindKind.BIND, "app_1")
        with pytest.raises(BindingError) as exc_info:
            states.consume(state.token, "app_1", kind=BindKind.SUBSCRIBE)
        assert exc_info.value.code == ResultCode.INVALID_STATE

    def test_tokens_are_unique(self, states):
        tokens = {states.issue(BindKind.BIND, "app_1").token for _ in range(50)}
        assert len(tokens) == 50

    def test_invalid_ttl(self, store):
        with pytest.raises(ValueError):
            BindStateMachine(store, ttl=0)

    def test_restored_token_keeps_original_deadline(self, states, store, clock):
        state = states.issue(BindKind.BIND, "app_1")
        clock.advance(200)
        with pytest.raises(BindingError):
            states.consume(state.token, "app_2")

        clock.advance(100)
        assert store.get(f"oauth_state:{state.token}") is None

    def test_concurrent_callbacks_consume_once(self, states):
        state = states.issue(BindKind.BIND, "app_1")
        outcomes = []
        barrier = threading.Barrier(8)

        def callback():
            barrier.wait()
            try:
                states.consume(state.token, "app_1")
                outcomes.append("ok")
            except BindingError as e:
                outcomes.append(e.code)

        threads = [threading.Thread(target=callback) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count(ResultCode.STATE_EXPIRED) == 7

    def test_consume_takes_record_in_one_step(self, store, clock):
        spy = MagicMock(wraps=store)
        states = BindStateMachine(spy, ttl=300, clock=clock)
        state = states.issue(BindKind.BIND, "app_1")

        states.consume(state.token, "app_1")

        spy.take.assert_called_once_with(f"oauth_state:{state.token}")
        spy.get.assert_not_called()
