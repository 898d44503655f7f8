"""
Registry - 注册表

渠道、推送目标与接收者的增删改查及二级索引维护。
"""

from src.business.registry.base import VerifyReport
from src.business.registry.channel_registry import ChannelRegistry
from src.business.registry.recipient_registry import RecipientRegistry
from src.business.registry.target_registry import TargetRegistry

__all__ = ["VerifyReport", "ChannelRegistry", "RecipientRegistry", "TargetRegistry"]
