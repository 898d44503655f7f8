"""
Push Delivery - 推送投递

- channels: 渠道适配器 (微信公众号)
- dispatcher: 推送调度器
"""

from src.business.notification.channels.base import ChannelAdapter, SendResult
from src.business.notification.dispatcher import PushDispatcher

__all__ = ["ChannelAdapter", "SendResult", "PushDispatcher"]
