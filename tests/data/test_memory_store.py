"""Tests for MemoryStore"""

import threading
from typing import get_type_hints

import pytest

from src.data.store.base import ListResult, Store
from src.data.store.memory_store import MemoryStore


class TestMemoryStore:
    """Get/put/delete/list and TTL"""

    @pytest.fixture
    def now(self):
        return {"t": 1000.0}

    @pytest.fixture
    def mem(self, now):
        return MemoryStore(clock=lambda: now["t"])

    def test_put_get_delete(self, mem):
        mem.put("a", {"x": 1})
        assert mem.get("a") == {"x": 1}
        mem.delete("a")
        assert mem.get("a") is None

    def test_delete_missing_is_noop(self, mem):
        mem.delete("missing")

    def test_values_are_copied(self, mem):
        value = {"items": [1]}
        mem.put("a", value)
        value["items"].append(2)
        fetched = mem.get("a")
        fetched["items"].append(3)
        assert mem.get("a") == {"items": [1]}

    def test_ttl_expiry(self, mem, now):
        mem.put("state", "v", ttl=300)
        now["t"] += 299
        assert mem.get("state") == "v"
        now["t"] += 1
        assert mem.get("state") is None

    def test_put_without_ttl_clears_expiry(self, mem, now):
        mem.put("k", 1, ttl=10)
        mem.put("k", 2)
        now["t"] += 100
        assert mem.get("k") == 2

    def test_list_prefix_sorted(self, mem):
        for key in ["app:2", "app:1", "ch:1", "app_idx:x"]:
            mem.put(key, 1)
        page = mem.list("app:")
        assert page.keys == ["app:1", "app:2"]
        assert page.complete
        assert page.cursor is None

    def test_list_pagination_with_cursor(self, mem):
        for i in range(7):
            mem.put(f"msg:{i}", i)

        first = mem.list("msg:", limit=3)
        assert first.keys == ["msg:0", "msg:1", "msg:2"]
        assert not first.complete

        second = mem.list("msg:", limit=3, cursor=first.cursor)
        assert second.keys == ["msg:3", "msg:4", "msg:5"]

        third = mem.list("msg:", limit=3, cursor=second.cursor)
        assert third.keys == ["msg:6"]
        assert third.complete

    def test_list_all_follows_cursor(self, mem):
        for i in range(600):
            mem.put(f"oid:{i:04d}", i)
        keys = mem.list_all("oid:")
        assert len(keys) == 600
        assert len(set(keys)) == 600

    def test_list_skips_expired(self, mem, now):
        mem.put("oauth_state:a", 1, ttl=5)
        mem.put("oauth_state:b", 1)
        now["t"] += 10
        assert mem.list_all("oauth_state:") == ["oauth_state:b"]
        assert len(mem) == 1

    def test_take_returns_and_removes(self, mem):
        mem.put("oauth_state:a", {"kind": "bind"}, ttl=300)
        assert mem.take("oauth_state:a") == {"kind": "bind"}
        assert mem.take("oauth_state:a") is None
        assert mem.get("oauth_state:a") is None

    def test_take_expired_returns_none(self, mem, now):
        mem.put("oauth_state:a", 1, ttl=5)
        now["t"] += 5
        assert mem.take("oauth_state:a") is None
        assert len(mem) == 0

    def test_take_single_winner_across_threads(self, mem):
        mem.put("oauth_state:a", "v", ttl=300)
        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(mem.take("oauth_state:a"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("v") == 1
        assert results.count(None) == 7

    def test_update_absent_key_sees_none(self, mem):
        seen = []

        def mutate(current):
            seen.append(current)
            return ["m1"]

        assert mem.update("msg_list", mutate) == ["m1"]
        assert seen == [None]
        assert mem.get("msg_list") == ["m1"]

    def test_update_with_ttl(self, mem, now):
        mem.update("k", lambda _: 1, ttl=10)
        now["t"] += 10
        assert mem.get("k") is None

    def test_concurrent_updates_are_not_lost(self, mem):
        barrier = threading.Barrier(16)

        def worker(n):
            barrier.wait()
            mem.update("msg_list", lambda ids: [f"m{n}"] + (ids or []))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(mem.get("msg_list")) == sorted(f"m{n}" for n in range(16))


class TestStoreInterface:
    """Annotations on the abstract store resolve against builtins"""

    def test_list_all_hints_resolve(self):
        hints = get_type_hints(Store.list_all)
        assert hints["return"] == list[str]

    def test_list_result_hints_resolve(self):
        hints = get_type_hints(ListResult)
        assert hints["keys"] == list[str]
