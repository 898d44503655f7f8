"""
Channel Dispatch - 渠道调度

按渠道类型查找适配器并委托发送。未知类型属于配置错误，不可重试。
"""

import logging
from typing import Iterable, Optional

from src.business.errors import ConfigurationError
from src.business.notification.channels.base import (
    ChannelAdapter,
    ChannelMessage,
    Credentials,
    SendResult,
)
from src.data.models.channel import Channel

logger = logging.getLogger(__name__)


def mask_channel(channel: Channel) -> Channel:
    """返回 app_secret 已脱敏的副本"""
    return channel.masked()


class ChannelDispatch:
    """渠道适配器注册表

    使用方式：
        dispatch = ChannelDispatch([WeChatChannel()])
        result = dispatch.send("wechat", message, credentials)
    """

    def __init__(self, adapters: Optional[Iterable[ChannelAdapter]] = None) -> None:
        self._adapters: dict[str, ChannelAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: ChannelAdapter) -> None:
        """注册适配器，同类型覆盖"""
        if adapter.type in self._adapters:
            logger.info(f"Replacing channel adapter for type {adapter.type}")
        self._adapters[adapter.type] = adapter

    def get(self, channel_type: str) -> ChannelAdapter:
        """获取适配器

        Raises:
            ConfigurationError: 类型未注册
        """
        adapter = self._adapters.get(channel_type)
        if adapter is None:
            raise ConfigurationError(f"Unsupported channel type: {channel_type}")
        return adapter

    def supported_types(self) -> list[str]:
        return sorted(self._adapters)

    def __contains__(self, channel_type: object) -> bool:
        return channel_type in self._adapters

    def send(
        self,
        channel_type: str,
        message: ChannelMessage,
        credentials: Credentials,
    ) -> SendResult:
        """发送单条消息

        Raises:
            ConfigurationError: 类型未注册

        Adapter exceptions are caught and reported as a failed result.
        """
        adapter = self.get(channel_type)
        try:
            return adapter.send(message, credentials)
        except Exception as e:
            logger.exception(f"Channel adapter {channel_type} raised during send")
            return SendResult.failed(f"Adapter error: {type(e).__name__}")
