"""
Business Errors - 业务异常

Every exception carries a :class:`ResultCode` so callers can turn it into a
response envelope without inspecting the message.
"""

from typing import Any

from src.engine.codes import ResultCode, default_message, error_response


class PushError(Exception):
    """Base class for expected, code-carrying failures."""

    default_code = ResultCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str | None = None,
        code: ResultCode | None = None,
        detail: Any = None,
    ) -> None:
        self.code = code if code is not None else self.default_code
        self.message = message or default_message(self.code)
        self.detail = detail
        super().__init__(self.message)

    def to_response(self) -> dict[str, Any]:
        """Error envelope for this exception."""
        return error_response(self.code, self.message, self.detail)


class ValidationError(PushError):
    """Bad or missing caller input."""

    default_code = ResultCode.INVALID_PARAM


class NotFoundError(PushError):
    """A referenced entity does not exist."""

    default_code = ResultCode.KEY_NOT_FOUND


class ConflictError(PushError):
    """Duplicate binding or deletion of a referenced entity."""

    default_code = ResultCode.ALREADY_SUBSCRIBED


class ConfigurationError(PushError, ValueError):
    """Missing/invalid channel credentials or deployment configuration."""

    default_code = ResultCode.INVALID_CONFIG


class UpstreamError(PushError):
    """The upstream platform rejected a non-send call (OAuth, user info)."""

    default_code = ResultCode.WECHAT_API_ERROR


class BindingError(PushError):
    """Bind/subscribe flow failures (state token, OAuth, follow status)."""

    default_code = ResultCode.INVALID_STATE
