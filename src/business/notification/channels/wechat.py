"""
WeChat Channel - 微信公众号推送渠道

通过微信公众号接口发送消息给关注用户。

支持：
- 模板消息 (template)
- 客服文本消息 (normal)
- 关注状态查询
- 网页授权 (OAuth) code 换取 OpenID
"""

import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import requests

from src.business.config.push_config import WeChatConfig
from src.business.errors import UpstreamError
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
from src.business.notification.channels.token_cache import AccessTokenCache
from src.data.models.channel import ChannelType

logger = logging.getLogger(__name__)

# access_token 失效相关错误码，出现时清除缓存
TOKEN_ERROR_CODES = {40001, 40014, 42001}

TEMPLATE_COLOR = "#173177"
REMARK_COLOR = "#999999"


class WeChatMessageBuilder:
    """微信消息体构建器"""

    @staticmethod
    def field(value: str, color: str = TEMPLATE_COLOR) -> dict[str, str]:
        return {"value": value, "color": color}

    @classmethod
    def template_message(
        cls,
        message: ChannelMessage,
        sent_at: Optional[datetime] = None,
        remark: str = "Powered by keypush",
    ) -> dict[str, Any]:
        """模板消息：first / keyword1 / keyword2 / remark"""
        sent_at = sent_at or datetime.now()
        payload: dict[str, Any] = {
            "touser": message.platform_user_id,
            "template_id": message.template_id,
            "data": {
                "first": cls.field(message.title),
                "keyword1": cls.field(message.body or "无内容"),
                "keyword2": cls.field(sent_at.strftime("%Y-%m-%d %H:%M:%S")),
                "remark": cls.field(remark, REMARK_COLOR),
            },
        }
        if message.url:
            payload["url"] = message.url
        return payload

    @staticmethod
    def text_message(message: ChannelMessage) -> dict[str, Any]:
        """客服文本消息"""
        return {
            "touser": message.platform_user_id,
            "msgtype": "text",
            "text": {"content": message.text},
        }


class WeChatChannel(ChannelAdapter):
    """微信公众号渠道

    使用方式：
        channel = WeChatChannel()
        result = channel.send(ChannelMessage("oXYZ", "标题", "内容"), credentials)
    """

    def __init__(
        self,
        config: Optional[WeChatConfig] = None,
        token_cache: Optional[AccessTokenCache] = None,
    ) -> None:
        """初始化微信渠道

        Args:
            config: 接口配置
            token_cache: access_token 缓存，默认每个实例独立
        """
        self.config = config or WeChatConfig()
        self.token_cache = token_cache if token_cache is not None else AccessTokenCache()

    @property
    def type(self) -> str:
        return ChannelType.WECHAT.value

    @property
    def name(self) -> str:
        return "微信公众号"

    def _url(self, path: str) -> str:
        return f"{self.config.api_base.rstrip('/')}{path}"

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """发送 HTTP 请求并解析 JSON

        Raises:
            UpstreamError: 网络错误、超时或非 200 响应
        """
        try:
            if method == "POST":
                response = requests.post(url, timeout=self.config.timeout, **kwargs)
            else:
                response = requests.get(url, timeout=self.config.timeout, **kwargs)
        except requests.Timeout:
            raise UpstreamError("Request timeout") from None
        except requests.RequestException as e:
            raise UpstreamError(f"Request failed: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(f"HTTP {response.status_code}", detail=response.text[:500])

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError("Invalid JSON response from WeChat") from e

    def get_access_token(self, credentials: Credentials) -> str:
        """获取 access_token（带缓存）

        Raises:
            UpstreamError: 微信接口返回错误
        """
        cached = self.token_cache.get(credentials.app_id, credentials.app_secret)
        if cached:
            return cached

        data = self._request(
            "GET",
            self._url("/cgi-bin/token"),
            params={
                "grant_type": "client_credential",
                "appid": credentials.app_id,
                "secret": credentials.app_secret,
            },
        )
        if data.get("errcode"):
            raise UpstreamError(f"WeChat API error: {data.get('errcode')} - {data.get('errmsg')}")

        token = data.get("access_token")
        expires_in = data.get("expires_in")
        if not token or not expires_in:
            raise UpstreamError("Invalid WeChat token response")

        self.token_cache.put(credentials.app_id, credentials.app_secret, token, expires_in)
        logger.debug(f"Access token refreshed for app {credentials.app_id}")
        return token

    def send(self, message: ChannelMessage, credentials: Credentials) -> SendResult:
        """发送消息

        模板消息走 /cgi-bin/message/template/send，普通消息走客服消息接口。
        上游错误以失败结果返回。
        """
        if not credentials.is_complete:
            return SendResult.failed("Missing required credentials")

        try:
            token = self.get_access_token(credentials)
        except UpstreamError as e:
            return SendResult.failed(e.message)

        if message.is_template:
            path = "/cgi-bin/message/template/send"
            payload = WeChatMessageBuilder.template_message(message)
        else:
            path = "/cgi-bin/message/custom/send"
            payload = WeChatMessageBuilder.text_message(message)

        try:
            data = self._request("POST", self._url(path), params={"access_token": token}, json=payload)
        except UpstreamError as e:
            return SendResult.failed(e.message)

        errcode = data.get("errcode", 0)
        if errcode == 0:
            msgid = data.get("msgid")
            return SendResult(
                status=SendStatus.SUCCESS,
                message_id=str(msgid) if msgid is not None else None,
            )

        if errcode in TOKEN_ERROR_CODES:
            self.token_cache.invalidate(credentials.app_id, credentials.app_secret)

        logger.warning(f"WeChat rejected message to {message.platform_user_id}: {errcode}")
        return SendResult.failed(f"{errcode}: {data.get('errmsg', 'unknown error')}", response=data)

    def validate(self, credentials: Credentials) -> ValidateResult:
        if not credentials.is_complete:
            return ValidateResult(valid=False, error="Missing required credentials")
        try:
            self.get_access_token(credentials)
        except UpstreamError as e:
            return ValidateResult(valid=False, error=e.message)
        return ValidateResult(valid=True)

    def check_follow_status(self, credentials: Credentials, platform_user_id: str) -> FollowStatus:
        """通过 /cgi-bin/user/info 查询关注状态；查询失败视为未关注"""
        try:
            token = self.get_access_token(credentials)
            data = self._request(
                "GET",
                self._url("/cgi-bin/user/info"),
                params={"access_token": token, "openid": platform_user_id, "lang": "zh_CN"},
            )
        except UpstreamError as e:
            logger.warning(f"Follow status check failed for {platform_user_id}: {e.message}")
            return FollowStatus(subscribed=False, error=e.message)

        if data.get("errcode"):
            return FollowStatus(subscribed=False, error=f"{data.get('errcode')}: {data.get('errmsg')}")

        return FollowStatus(
            subscribed=data.get("subscribe") == 1,
            nickname=data.get("nickname") or None,
        )

    def exchange_oauth_code(self, credentials: Credentials, code: str) -> OAuthIdentity:
        """网页授权 code 换取 OpenID，昵称尽力获取"""
        data = self._request(
            "GET",
            self._url("/sns/oauth2/access_token"),
            params={
                "appid": credentials.app_id,
                "secret": credentials.app_secret,
                "code": code,
                "grant_type": "authorization_code",
            },
        )
        if data.get("errcode") or not data.get("openid"):
            raise UpstreamError(
                f"OAuth code exchange failed: {data.get('errcode')} - {data.get('errmsg')}"
            )

        openid = data["openid"]
        nickname = None
        scope = data.get("scope") or "snsapi_userinfo"
        if data.get("access_token") and "snsapi_userinfo" in scope:
            try:
                info = self._request(
                    "GET",
                    self._url("/sns/userinfo"),
                    params={"access_token": data["access_token"], "openid": openid, "lang": "zh_CN"},
                )
                if not info.get("errcode"):
                    nickname = info.get("nickname") or None
            except UpstreamError as e:
                logger.debug(f"userinfo lookup skipped: {e.message}")

        return OAuthIdentity(platform_user_id=openid, nickname=nickname)

    def build_authorize_url(
        self,
        app_id: str,
        redirect_uri: str,
        state: str,
        scope: str = "snsapi_userinfo",
    ) -> str:
        """网页授权跳转链接"""
        base = self.config.oauth_base.rstrip("/")
        return (
            f"{base}/connect/oauth2/authorize"
            f"?appid={quote(app_id, safe='')}"
            f"&redirect_uri={quote(redirect_uri, safe='')}"
            f"&response_type=code"
            f"&scope={quote(scope, safe='')}"
            f"&state={quote(state, safe='')}"
            f"#wechat_redirect"
        )
