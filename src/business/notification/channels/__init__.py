"""
Channel Adapters - 渠道适配器

支持的渠道：
- WeChatChannel: 微信公众号（模板消息 / 客服消息）
"""

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
from src.business.notification.channels.registry import ChannelDispatch, mask_channel
from src.business.notification.channels.token_cache import AccessTokenCache
from src.business.notification.channels.wechat import WeChatChannel, WeChatMessageBuilder

__all__ = [
    "ChannelAdapter",
    "ChannelMessage",
    "Credentials",
    "FollowStatus",
    "OAuthIdentity",
    "SendResult",
    "SendStatus",
    "ValidateResult",
    "ChannelDispatch",
    "mask_channel",
    "AccessTokenCache",
    "WeChatChannel",
    "WeChatMessageBuilder",
]
