"""
Command Parser - 解析公众号消息中的绑定指令

格式：``<关键词> <push key>``，例如 ``绑定 APKxxxx``。
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.engine.keys import is_valid_push_key


class CommandAction(str, Enum):
    """指令类型"""

    BIND = "bind"
    UNBIND = "unbind"
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"

    @property
    def is_attach(self) -> bool:
        return self in (CommandAction.BIND, CommandAction.SUBSCRIBE)

    @property
    def is_detach(self) -> bool:
        return self in (CommandAction.UNBIND, CommandAction.UNSUBSCRIBE)


COMMAND_KEYWORDS: dict[str, CommandAction] = {
    "绑定": CommandAction.BIND,
    "订阅": CommandAction.SUBSCRIBE,
    "解绑": CommandAction.UNBIND,
    "退订": CommandAction.UNSUBSCRIBE,
    "bind": CommandAction.BIND,
    "subscribe": CommandAction.SUBSCRIBE,
    "unbind": CommandAction.UNBIND,
    "unsubscribe": CommandAction.UNSUBSCRIBE,
}

_COMMAND_PATTERN = re.compile(r"^(\S+)\s+(\S+)$")


@dataclass(frozen=True)
class Command:
    action: CommandAction
    key: str


class CommandParser:
    """指令解析器"""

    def parse(self, content: Optional[str]) -> Optional[Command]:
        """解析消息内容，不是合法指令时返回 None"""
        if not content or not isinstance(content, str):
            return None

        match = _COMMAND_PATTERN.match(content.strip())
        if not match:
            return None

        keyword, key = match.groups()
        action = COMMAND_KEYWORDS.get(keyword.lower()) or COMMAND_KEYWORDS.get(keyword)
        if action is None:
            return None

        if not is_valid_push_key(key):
            return None

        return Command(action=action, key=key)

    @staticmethod
    def is_help_request(content: Optional[str]) -> bool:
        if not content:
            return False
        text = content.strip()
        return "帮助" in text or text.lower() == "help"

    @staticmethod
    def help_message() -> str:
        return (
            "支持的指令：\n"
            "- 绑定 APKxxxxx（绑定单人推送）\n"
            "- 订阅 APKxxxxx（订阅群发推送）\n"
            "- 解绑 APKxxxxx（解除绑定）\n"
            "- 退订 APKxxxxx（取消订阅）"
        )
