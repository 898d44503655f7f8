"""
Push Service - 推送服务入口

根据 PushConfig 组装存储、注册表、调度器、历史和绑定服务，对外暴露统一接口。
"""

import logging
import re
from typing import Callable, Iterable, Optional

from src.business.binding.service import BindingService
from src.business.binding.state_machine import BindStateMachine
from src.business.config.push_config import PushConfig
from src.business.history.delivery_history import DeliveryHistory
from src.business.notification.channels.base import ChannelAdapter
from src.business.notification.channels.registry import ChannelDispatch
from src.business.notification.channels.wechat import WeChatChannel
from src.business.notification.dispatcher import PushDispatcher
from src.business.registry.channel_registry import ChannelRegistry
from src.business.registry.recipient_registry import RecipientRegistry
from src.business.registry.target_registry import TargetRegistry
from src.data.models.delivery import PushResult
from src.data.store.base import Store
from src.data.store.memory_store import MemoryStore
from src.engine.rate_limit import RateLimiter, utcnow

logger = logging.getLogger(__name__)

_WEBHOOK_PATH = re.compile(r"^/?([A-Za-z0-9_-]+)\.send$")


def parse_webhook_path(path: Optional[str]) -> Optional[str]:
    """从 ``/<KEY>.send`` 路径提取 push key，不匹配时返回 None"""
    if not path:
        return None
    match = _WEBHOOK_PATH.match(path.split("?", 1)[0])
    return match.group(1) if match else None


def build_store(config: PushConfig) -> Store:
    """按配置创建存储"""
    if config.store.backend == "redis":
        from src.data.store.redis_store import RedisStore

        return RedisStore(
            host=config.store.host,
            port=config.store.port,
            db=config.store.db,
            password=config.store.password,
            namespace=config.store.namespace,
        )
    return MemoryStore()


class PushService:
    """推送服务

    使用方式：
        service = PushService(PushConfig.load())
        channel = service.channels.create("公众号", app_id, app_secret)
        app = service.targets.create("告警", channel.id, push_mode="subscribe")
        result = service.push_by_key(app.key, "Alert", "disk full")
    """

    def __init__(
        self,
        config: Optional[PushConfig] = None,
        store: Optional[Store] = None,
        adapters: Optional[Iterable[ChannelAdapter]] = None,
        clock: Callable = utcnow,
    ) -> None:
        """初始化推送服务

        Args:
            config: 服务配置，默认 PushConfig()
            store: 存储，默认按 config.store 创建
            adapters: 渠道适配器，默认只有微信公众号
            clock: 当前时间来源 (UTC)
        """
        self.config = config or PushConfig()
        self.store = store if store is not None else build_store(self.config)

        if adapters is None:
            adapters = [WeChatChannel(self.config.wechat)]
        self.channel_dispatch = ChannelDispatch(adapters)

        self.channels = ChannelRegistry(
            self.store, supported_types=self.channel_dispatch.supported_types(), clock=clock
        )
        self.recipients = RecipientRegistry(self.store, clock=clock)
        self.targets = TargetRegistry(self.store, recipients=self.recipients, clock=clock)
        self.history = DeliveryHistory(self.store, clock=clock)

        self.dispatcher = PushDispatcher(
            targets=self.targets,
            channels=self.channels,
            channel_dispatch=self.channel_dispatch,
            history=self.history,
            rate_limiter=RateLimiter(
                limit=self.config.rate_limit.per_minute,
                period_seconds=self.config.rate_limit.period_seconds,
                clock=clock,
            ),
            max_workers=self.config.dispatch.max_workers,
            clock=clock,
        )
        self.binding = BindingService(
            targets=self.targets,
            channels=self.channels,
            channel_dispatch=self.channel_dispatch,
            states=BindStateMachine(self.store, ttl=self.config.binding.state_ttl, clock=clock),
            history=self.history,
            config=self.config.binding,
            clock=clock,
        )

    def push_by_key(
        self,
        push_key: str,
        title: str,
        body: Optional[str] = None,
        url: Optional[str] = None,
    ) -> PushResult:
        """按 push key 推送"""
        return self.dispatcher.push(push_key, title, body, url)

    def push_by_path(self, path: str, title: str, body: Optional[str] = None) -> PushResult:
        """按 webhook 路径 ``/<KEY>.send`` 推送"""
        return self.dispatcher.push(parse_webhook_path(path) or "", title, body)

    def prune_history(self, retention_days: Optional[int] = None) -> int:
        """按保留天数清理历史，默认使用配置"""
        days = self.config.retention.days if retention_days is None else retention_days
        return self.history.prune(days)
