"""
Base Channel Adapter - 渠道适配器基类

定义上游消息平台适配器的通用接口和结果类型。
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from src.data.models.channel import Channel, ChannelConfig
from src.engine.rate_limit import utcnow


class SendStatus(str, Enum):
    """发送状态"""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SendResult:
    """发送结果"""

    status: SendStatus
    message_id: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow)
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == SendStatus.SUCCESS

    @classmethod
    def failed(cls, error: str, **details: Any) -> "SendResult":
        return cls(status=SendStatus.FAILED, error=error, details=details)


@dataclass
class Credentials:
    """渠道凭证（app_id + app_secret）"""

    app_id: str
    app_secret: str

    @classmethod
    def from_channel(cls, channel: Channel) -> "Credentials":
        return cls.from_config(channel.config)

    @classmethod
    def from_config(cls, config: ChannelConfig) -> "Credentials":
        return cls(app_id=config.app_id, app_secret=config.app_secret)

    @property
    def is_complete(self) -> bool:
        return bool(self.app_id and self.app_secret)


@dataclass
class ChannelMessage:
    """单条待发送消息

    Attributes:
        platform_user_id: 接收者的平台用户 ID (OpenID)
        title: 标题
        body: 正文（可选）
        template_id: 模板消息 ID，为空时发送普通文本
        url: 点击跳转链接（可选）
    """

    platform_user_id: str
    title: str
    body: Optional[str] = None
    template_id: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_template(self) -> bool:
        return bool(self.template_id)

    @property
    def text(self) -> str:
        """普通文本内容：标题 + 空行 + 正文"""
        if self.body:
            return f"{self.title}\n\n{self.body}"
        return self.title


@dataclass
class ValidateResult:
    """凭证校验结果"""

    valid: bool
    error: Optional[str] = None


@dataclass
class FollowStatus:
    """关注状态"""

    subscribed: bool
    nickname: Optional[str] = None
    error: Optional[str] = None


@dataclass
class OAuthIdentity:
    """OAuth 授权换取的用户身份"""

    platform_user_id: str
    nickname: Optional[str] = None


class ChannelAdapter(ABC):
    """渠道适配器基类

    所有上游平台适配器都应继承此类。预期内的上游拒绝（未关注、被限流等）
    以失败结果返回，而不是抛出异常。
    """

    @property
    @abstractmethod
    def type(self) -> str:
        """渠道类型标识"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """渠道显示名称"""
        pass

    @property
    def required_fields(self) -> tuple[str, ...]:
        return ("app_id", "app_secret")

    @property
    def sensitive_fields(self) -> tuple[str, ...]:
        return ("app_secret",)

    @abstractmethod
    def send(self, message: ChannelMessage, credentials: Credentials) -> SendResult:
        """发送消息

        Args:
            message: 消息
            credentials: 渠道凭证

        Returns:
            SendResult: 发送结果
        """
        pass

    @abstractmethod
    def validate(self, credentials: Credentials) -> ValidateResult:
        """校验凭证是否可用"""
        pass

    @abstractmethod
    def check_follow_status(self, credentials: Credentials, platform_user_id: str) -> FollowStatus:
        """查询用户是否关注"""
        pass

    @abstractmethod
    def exchange_oauth_code(self, credentials: Credentials, code: str) -> OAuthIdentity:
        """用 OAuth code 换取用户身份

        Raises:
            UpstreamError: 换取失败
        """
        pass

    @abstractmethod
    def build_authorize_url(
        self,
        app_id: str,
        redirect_uri: str,
        state: str,
        scope: str,
    ) -> str:
        """授权跳转链接，state 原样回传给回调"""
        pass
