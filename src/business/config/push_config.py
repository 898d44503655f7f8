"""
Push Configuration - 推送配置管理

加载和管理推送服务的配置参数。

优先级（低 → 高）：dataclass 默认值 → YAML 文件 → 环境变量 (KEYPUSH_*)

```yaml
rate_limit:
  per_minute: 5
  period_seconds: 60
retention:
  days: 30
binding:
  state_ttl: 300
dispatch:
  max_workers: 8
store:
  backend: redis
  host: localhost
```
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from src.business.config.config_utils import env_overrides, merge_overrides
from src.business.errors import ConfigurationError

ENV_PREFIX = "KEYPUSH_"

ENV_MAPPING: dict[str, tuple[str, ...]] = {
    "RATE_LIMIT_PER_MINUTE": ("rate_limit", "per_minute"),
    "RATE_LIMIT_PERIOD": ("rate_limit", "period_seconds"),
    "RETENTION_DAYS": ("retention", "days"),
    "STATE_TTL": ("binding", "state_ttl"),
    "CALLBACK_BASE_URL": ("binding", "callback_base_url"),
    "MAX_WORKERS": ("dispatch", "max_workers"),
    "STORE_BACKEND": ("store", "backend"),
    "REDIS_HOST": ("store", "host"),
    "REDIS_PORT": ("store", "port"),
    "REDIS_DB": ("store", "db"),
    "REDIS_PASSWORD": ("store", "password"),
    "WECHAT_TIMEOUT": ("wechat", "timeout"),
}

STORE_BACKENDS = ("memory", "redis")


def _check_int(name: str, value: Any, minimum: int) -> None:
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        qualifier = "positive" if minimum == 1 else f">= {minimum}"
        raise ConfigurationError(f"{name} must be {qualifier}, got {value}")


@dataclass
class RateLimitConfig:
    """频率限制配置"""

    per_minute: int = 5
    period_seconds: int = 60


@dataclass
class RetentionConfig:
    """历史记录保留配置"""

    days: int = 30


@dataclass
class BindingConfig:
    """绑定流程配置"""

    state_ttl: int = 300
    oauth_scope: str = "snsapi_userinfo"
    callback_base_url: str = ""


@dataclass
class DispatchConfig:
    """推送调度配置"""

    max_workers: int = 8


@dataclass
class StoreConfig:
    """存储配置"""

    backend: str = "memory"
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str | None = None
    namespace: str = "keypush:"

    def __post_init__(self) -> None:
        # 环境变量中的纯数字密码会被转换为 int
        if self.password is not None:
            self.password = str(self.password)


@dataclass
class WeChatConfig:
    """微信接口配置"""

    timeout: int = 10
    api_base: str = "https://api.weixin.qq.com"
    oauth_base: str = "https://open.weixin.qq.com"


@dataclass
class PushConfig:
    """推送服务总配置"""

    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    binding: BindingConfig = field(default_factory=BindingConfig)
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    wechat: WeChatConfig = field(default_factory=WeChatConfig)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """校验配置，非法值抛出 ConfigurationError"""
        positive = {
            "rate_limit.per_minute": self.rate_limit.per_minute,
            "rate_limit.period_seconds": self.rate_limit.period_seconds,
            "retention.days": self.retention.days,
            "binding.state_ttl": self.binding.state_ttl,
            "dispatch.max_workers": self.dispatch.max_workers,
            "store.port": self.store.port,
        }
        for name, value in positive.items():
            _check_int(name, value, minimum=1)
        _check_int("store.db", self.store.db, minimum=0)
        if self.store.backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"store.backend must be one of {', '.join(STORE_BACKENDS)}, got {self.store.backend!r}"
            )

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "PushConfig":
        """从字典创建配置"""
        data = data or {}
        try:
            return cls(
                rate_limit=RateLimitConfig(**data.get("rate_limit", {})),
                retention=RetentionConfig(**data.get("retention", {})),
                binding=BindingConfig(**data.get("binding", {})),
                dispatch=DispatchConfig(**data.get("dispatch", {})),
                store=StoreConfig(**data.get("store", {})),
                wechat=WeChatConfig(**data.get("wechat", {})),
            )
        except TypeError as e:
            raise ConfigurationError(f"Unknown configuration key: {e}") from e

    @classmethod
    def from_yaml(cls, path: str | Path) -> "PushConfig":
        """从 YAML 文件加载配置"""
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str | Path | None = None, use_env: bool = True) -> "PushConfig":
        """加载配置：默认值 → YAML → 环境变量

        Args:
            path: YAML 路径，默认 config/keypush.yaml（不存在则跳过）
            use_env: 是否应用 KEYPUSH_* 环境变量
        """
        if path is None:
            path = Path.cwd() / "config" / "keypush.yaml"

        data: dict[str, Any] = {}
        path = Path(path)
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}

        if use_env:
            load_dotenv()
            data = merge_overrides(data, env_overrides(ENV_PREFIX, ENV_MAPPING))

        return cls.from_dict(data)
