"""
Configuration Management - 配置管理

- PushConfig: 推送服务配置（YAML + 环境变量）
"""

from src.business.config.push_config import (
    BindingConfig,
    DispatchConfig,
    PushConfig,
    RateLimitConfig,
    RetentionConfig,
    StoreConfig,
    WeChatConfig,
)

__all__ = [
    "BindingConfig",
    "DispatchConfig",
    "PushConfig",
    "RateLimitConfig",
    "RetentionConfig",
    "StoreConfig",
    "WeChatConfig",
]
