"""Numeric result codes and their HTTP mapping.

Codes group by leading digits: 400xx validation, 401xx auth, 404xx not found,
429xx rate limited, 500xx internal.
"""

from enum import IntEnum
from typing import Any


class ResultCode(IntEnum):
    """Result codes returned by every public operation."""

    SUCCESS = 0

    # Validation (400xx)
    MISSING_TITLE = 40001
    INVALID_PARAM = 40002
    INVALID_CONFIG = 40003
    INVALID_STATE = 40004
    STATE_EXPIRED = 40005
    OAUTH_FAILED = 40006
    NOT_FOLLOWED = 40007
    ALREADY_BOUND = 40008
    ALREADY_SUBSCRIBED = 40009
    CHANNEL_IN_USE = 40010

    # Auth (401xx)
    UNAUTHORIZED = 40100
    INVALID_TOKEN = 40101
    TOKEN_REQUIRED = 40102

    # Not found (404xx)
    KEY_NOT_FOUND = 40401
    TOPIC_NOT_FOUND = 40402
    MESSAGE_NOT_FOUND = 40403
    OPENID_NOT_FOUND = 40404
    NO_SUBSCRIBERS = 40405
    CHANNEL_NOT_FOUND = 40406
    APP_NOT_FOUND = 40407

    # Rate limit (429xx)
    RATE_LIMIT_EXCEEDED = 42901

    # Internal (500xx)
    SERVER_ERROR = 50000
    INTERNAL_ERROR = 50001
    CONFIG_ERROR = 50002
    WECHAT_API_ERROR = 50003


DEFAULT_MESSAGES: dict[ResultCode, str] = {
    ResultCode.SUCCESS: "成功",
    ResultCode.MISSING_TITLE: "Message title is required",
    ResultCode.INVALID_PARAM: "Invalid parameter",
    ResultCode.INVALID_CONFIG: "Invalid configuration",
    ResultCode.INVALID_STATE: "无效的请求参数",
    ResultCode.STATE_EXPIRED: "链接已过期或无效",
    ResultCode.OAUTH_FAILED: "微信授权失败",
    ResultCode.NOT_FOLLOWED: "请先关注公众号",
    ResultCode.ALREADY_BOUND: "已绑定",
    ResultCode.ALREADY_SUBSCRIBED: "已订阅",
    ResultCode.CHANNEL_IN_USE: "Channel is referenced by apps and cannot be deleted",
    ResultCode.UNAUTHORIZED: "未授权",
    ResultCode.INVALID_TOKEN: "Invalid admin token",
    ResultCode.TOKEN_REQUIRED: "Admin token is required",
    ResultCode.KEY_NOT_FOUND: "Push key not found",
    ResultCode.TOPIC_NOT_FOUND: "Topic not found",
    ResultCode.MESSAGE_NOT_FOUND: "Message not found",
    ResultCode.OPENID_NOT_FOUND: "OpenID not found",
    ResultCode.NO_SUBSCRIBERS: "Target has no subscribers",
    ResultCode.CHANNEL_NOT_FOUND: "Channel not found",
    ResultCode.APP_NOT_FOUND: "App not found",
    ResultCode.RATE_LIMIT_EXCEEDED: "Rate limit exceeded",
    ResultCode.SERVER_ERROR: "服务器错误",
    ResultCode.INTERNAL_ERROR: "Internal server error",
    ResultCode.CONFIG_ERROR: "配置错误",
    ResultCode.WECHAT_API_ERROR: "WeChat API error",
}


def http_status(code: int) -> int:
    """Map a result code to an HTTP status."""
    if code == 0:
        return 200
    if 40000 <= code < 40100:
        return 400
    if 40100 <= code < 40200:
        return 401
    if 40400 <= code < 40500:
        return 404
    if 42900 <= code < 43000:
        return 429
    return 500


def default_message(code: int) -> str:
    """Default human-readable message for ``code``."""
    try:
        return DEFAULT_MESSAGES[ResultCode(code)]
    except ValueError:
        return "未知错误"


def error_response(
    code: int,
    message: str | None = None,
    detail: Any = None,
) -> dict[str, Any]:
    """Build an error envelope ``{code, message[, detail]}``."""
    response: dict[str, Any] = {
        "code": int(code),
        "message": message or default_message(code),
    }
    if detail is not None:
        response["detail"] = detail
    return response


def success_response(data: Any, message: str = "成功") -> dict[str, Any]:
    """Build a success envelope ``{code: 0, message, data}``."""
    return {"code": 0, "message": message, "data": data}
