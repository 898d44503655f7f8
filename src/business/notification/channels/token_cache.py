"""
Access Token Cache - 上游 access_token 缓存

按凭证指纹（app_id + app_secret 的 SHA-256）缓存短期 token，不同凭证
永不共享同一个 token。
"""

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

# token 提前失效的秒数
EXPIRY_MARGIN_SECONDS = 300


def credential_fingerprint(app_id: str, app_secret: str) -> str:
    """凭证指纹"""
    return hashlib.sha256(f"{app_id}\x00{app_secret}".encode("utf-8")).hexdigest()


@dataclass
class _CachedToken:
    token: str
    expires_at: float


class AccessTokenCache:
    """线程安全的 token 缓存

    使用方式：
        cache = AccessTokenCache()
        token = cache.get(app_id, app_secret)
        if token is None:
            token, expires_in = fetch()
            cache.put(app_id, app_secret, token, expires_in)
    """

    def __init__(
        self,
        margin_seconds: int = EXPIRY_MARGIN_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._margin = margin_seconds
        self._clock = clock
        self._tokens: dict[str, _CachedToken] = {}
        self._lock = threading.Lock()

    def get(self, app_id: str, app_secret: str) -> Optional[str]:
        key = credential_fingerprint(app_id, app_secret)
        with self._lock:
            cached = self._tokens.get(key)
            if cached is None:
                return None
            if cached.expires_at <= self._clock():
                del self._tokens[key]
                return None
        logger.debug(f"Access token cache hit for app {app_id}")
        return cached.token

    def put(self, app_id: str, app_secret: str, token: str, expires_in: int) -> None:
        """缓存 token，有效期为 expires_in - margin 秒"""
        ttl = max(int(expires_in) - self._margin, 0)
        if ttl <= 0:
            return
        key = credential_fingerprint(app_id, app_secret)
        with self._lock:
            self._tokens[key] = _CachedToken(token=token, expires_at=self._clock() + ttl)

    def invalidate(self, app_id: str, app_secret: str) -> None:
        with self._lock:
            self._tokens.pop(credential_fingerprint(app_id, app_secret), None)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
