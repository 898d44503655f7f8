"""
Binding - 用户绑定

- state_machine: 一次性 OAuth state 令牌
- commands: 公众号消息指令解析
- service: 网页授权回调与消息指令绑定
"""

from src.business.binding.commands import Command, CommandAction, CommandParser
from src.business.binding.service import BindingService, BindOutcome, BindRedirect, CommandReply
from src.business.binding.state_machine import BindStateMachine

__all__ = [
    "Command",
    "CommandAction",
    "CommandParser",
    "BindingService",
    "BindOutcome",
    "BindRedirect",
    "CommandReply",
    "BindStateMachine",
]
