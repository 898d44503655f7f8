"""Tests for AccessTokenCache"""

import pytest

from src.business.notification.channels.token_cache import AccessTokenCache, credential_fingerprint


class TestAccessTokenCache:
    """Keyed by credential fingerprint with expiry"""

    @pytest.fixture
    def now(self):
        return {"t": 0.0}

    @pytest.fixture
    def cache(self, now):
        return AccessTokenCache(margin_seconds=300, clock=lambda: now["t"])

    def test_hit_before_expiry(self, cache, now):
        cache.put("wx1", "s1", "TOKEN", 7200)
        now["t"] = 6899
        assert cache.get("wx1", "s1") == "TOKEN"

    def test_expires_with_margin(self, cache, now):
        cache.put("wx1", "s1", "TOKEN", 7200)
        now["t"] = 6900
        assert cache.get("wx1", "s1") is None
        assert len(cache) == 0

    def test_distinct_credentials_never_share(self, cache):
        cache.put("wx1", "s1", "A", 7200)
        assert cache.get("wx1", "s2") is None
        assert cache.get("wx2", "s1") is None
        cache.put("wx1", "s2", "B", 7200)
        assert cache.get("wx1", "s1") == "A"
        assert cache.get("wx1", "s2") == "B"

    def test_fingerprint_is_unambiguous(self):
        assert credential_fingerprint("ab", "c") != credential_fingerprint("a", "bc")

    def test_short_lived_token_not_cached(self, cache):
        cache.put("wx1", "s1", "TOKEN", 200)
        assert cache.get("wx1", "s1") is None

    def test_invalidate(self, cache):
        cache.put("wx1", "s1", "TOKEN", 7200)
        cache.invalidate("wx1", "s1")
        assert cache.get("wx1", "s1") is None
