"""
Bind State Machine - 绑定状态令牌

issued → consumed（成功）或 issued → expired/invalid（失败），无其他转换。

The state record is taken atomically from the store before the caller
performs the bind, so of two concurrent callbacks only one can succeed. A
mismatched kind/target puts the record back for the legitimate callback.
"""

import logging
import math
from datetime import timedelta
from typing import Any, Optional

from src.business.errors import BindingError
from src.business.registry import store_keys
from src.business.registry.base import BaseRegistry
from src.data.models.bind_state import BindKind, BindState
from src.data.store.base import Store
from src.engine.codes import ResultCode
from src.engine.keys import new_state_token

logger = logging.getLogger(__name__)

DEFAULT_STATE_TTL = 300


class BindStateMachine(BaseRegistry):
    """签发与消费一次性 state 令牌"""

    def __init__(self, store: Store, ttl: int = DEFAULT_STATE_TTL, **kwargs: Any) -> None:
        super().__init__(store, **kwargs)
        if ttl < 1:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl

    def issue(self, kind: BindKind, target_id: str) -> BindState:
        """签发令牌，存储有效期为 ttl 秒"""
        state = BindState(
            token=new_state_token(),
            kind=BindKind(kind),
            target_id=target_id,
            issued_at=self._now(),
        )
        self._store.put(store_keys.oauth_state(state.token), state.to_dict(), ttl=self.ttl)
        logger.debug(f"Bind state issued for {target_id} ({state.kind.value})")
        return state

    def consume(
        self,
        token: Optional[str],
        target_id: str,
        kind: Optional[BindKind] = None,
    ) -> BindState:
        """消费令牌

        Raises:
            BindingError: INVALID_STATE（缺失或与回调不匹配）/ STATE_EXPIRED（不存在或已过期）
        """
        if not token:
            raise BindingError(code=ResultCode.INVALID_STATE)

        key = store_keys.oauth_state(token)
        data = self._store.take(key)
        if not data:
            logger.warning(f"Bind state missing or expired for {target_id}")
            raise BindingError(code=ResultCode.STATE_EXPIRED)

        state = BindState.from_dict(data)
        expires_at = state.issued_at + timedelta(seconds=self.ttl)

        # also expire by issued_at
        now = self._now()
        if now >= expires_at:
            logger.warning(f"Bind state expired for {target_id}")
            raise BindingError(code=ResultCode.STATE_EXPIRED)

        if state.target_id != target_id or (kind is not None and state.kind != BindKind(kind)):
            # restore for the legitimate callback
            remaining = max(1, math.ceil((expires_at - now).total_seconds()))
            self._store.put(key, data, ttl=remaining)
            logger.warning(f"Bind state mismatch: issued for {state.target_id}, callback for {target_id}")
            raise BindingError(code=ResultCode.INVALID_STATE)

        logger.info(f"Bind state consumed for {target_id}")
        return state
