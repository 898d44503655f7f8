"""
Binding Service - 管理用户与推送目标的绑定关系

两种绑定方式：
1. 网页授权：issue_bind_redirect → 微信授权 → handle_callback
2. 消息指令：用户向公众号发送 "绑定 APKxxxx" → handle_inbound_command
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from src.business.config.push_config import BindingConfig
from src.business.errors import BindingError, ConfigurationError, NotFoundError, PushError, UpstreamError
from src.business.binding.commands import Command, CommandAction, CommandParser
from src.business.binding.state_machine import BindStateMachine
from src.business.history.delivery_history import DeliveryHistory
from src.business.notification.channels.base import ChannelAdapter, Credentials
from src.business.notification.channels.registry import ChannelDispatch
from src.business.registry.channel_registry import ChannelRegistry
from src.business.registry.target_registry import TargetRegistry
from src.data.models.bind_state import BindKind
from src.data.models.channel import Channel
from src.data.models.delivery import DeliveryRecord, DeliveryResult, Direction
from src.data.models.recipient import Recipient
from src.data.models.target import PushTarget
from src.engine.codes import ResultCode
from src.engine.keys import KeyPrefix, new_record_id
from src.engine.rate_limit import utcnow

logger = logging.getLogger(__name__)


@dataclass
class BindRedirect:
    """授权跳转信息"""

    url: str
    state: str
    target_id: str
    kind: BindKind
    expires_in: int


@dataclass
class BindOutcome:
    """绑定结果"""

    target: PushTarget
    recipient: Recipient
    created: bool
    kind: BindKind


@dataclass
class CommandReply:
    """指令处理结果

    ``message`` is the text to send back to the user; None means no reply.
    """

    code: ResultCode
    message: Optional[str]
    action: Optional[CommandAction] = None
    target_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.code in (ResultCode.SUCCESS, ResultCode.ALREADY_BOUND, ResultCode.ALREADY_SUBSCRIBED)


_ACTION_LABELS = {
    CommandAction.BIND: "绑定",
    CommandAction.SUBSCRIBE: "订阅",
    CommandAction.UNBIND: "解绑",
    CommandAction.UNSUBSCRIBE: "退订",
}


def _kind_for(target: PushTarget) -> BindKind:
    return BindKind.SUBSCRIBE if target.is_fan_out else BindKind.BIND


class BindingService:
    """绑定服务

    使用方式：
        redirect = binding.issue_bind_redirect(push_key)
        # 用户授权后回调
        outcome = binding.handle_callback(target_id, code, state)
    """

    def __init__(
        self,
        targets: TargetRegistry,
        channels: ChannelRegistry,
        channel_dispatch: ChannelDispatch,
        states: BindStateMachine,
        history: Optional[DeliveryHistory] = None,
        config: Optional[BindingConfig] = None,
        clock: Callable = utcnow,
    ) -> None:
        self.targets = targets
        self.recipients = targets.recipients
        self.channels = channels
        self.channel_dispatch = channel_dispatch
        self.states = states
        self.history = history
        self.config = config or BindingConfig()
        self.parser = CommandParser()
        self._clock = clock

    def _channel_for(self, target: PushTarget) -> tuple[Channel, ChannelAdapter, Credentials]:
        channel = self.channels.get_by_id(target.channel_id)
        if channel is None or not channel.config.is_complete:
            raise ConfigurationError(f"Channel for app {target.id} is missing or incomplete")
        adapter = self.channel_dispatch.get(channel.type)
        return channel, adapter, Credentials.from_channel(channel)

    def callback_url(self, target_id: str) -> str:
        base = self.config.callback_base_url.rstrip("/")
        if not base:
            raise ConfigurationError("binding.callback_base_url is not configured")
        return f"{base}/bind/{target_id}/callback"

    def issue_bind_redirect(self, push_key: str, redirect_uri: Optional[str] = None) -> BindRedirect:
        """签发 state 并生成授权跳转链接

        Args:
            push_key: 推送 key
            redirect_uri: 回调地址，默认 {callback_base_url}/bind/{target_id}/callback

        Raises:
            NotFoundError: KEY_NOT_FOUND
            ConfigurationError: 渠道缺失或未配置回调地址
        """
        target = self.targets.get_by_key(push_key)
        if target is None:
            raise NotFoundError(code=ResultCode.KEY_NOT_FOUND)

        channel, adapter, _ = self._channel_for(target)
        redirect_uri = redirect_uri or self.callback_url(target.id)

        state = self.states.issue(_kind_for(target), target.id)
        url = adapter.build_authorize_url(
            channel.config.app_id,
            redirect_uri,
            state.token,
            self.config.oauth_scope,
        )
        return BindRedirect(
            url=url,
            state=state.token,
            target_id=target.id,
            kind=state.kind,
            expires_in=self.states.ttl,
        )

    def handle_callback(self, target_id: str, code: Optional[str], state: Optional[str]) -> BindOutcome:
        """处理授权回调

        The target is loaded first so the token kind can be checked against
        its mode. Once consumed the token is not refunded if a later step
        fails.

        Raises:
            BindingError: INVALID_STATE / STATE_EXPIRED / OAUTH_FAILED / NOT_FOLLOWED
            NotFoundError: APP_NOT_FOUND
            ConfigurationError: 渠道缺失
        """
        if not code:
            raise BindingError("Missing authorization code", ResultCode.INVALID_STATE)

        target = self.targets.require(target_id)
        bind_state = self.states.consume(state, target_id, kind=_kind_for(target))

        _, adapter, credentials = self._channel_for(target)

        try:
            identity = adapter.exchange_oauth_code(credentials, code)
        except UpstreamError as e:
            logger.warning(f"OAuth exchange failed for {target_id}: {e.message}")
            raise BindingError(code=ResultCode.OAUTH_FAILED, detail=e.message) from e

        follow = adapter.check_follow_status(credentials, identity.platform_user_id)
        if not follow.subscribed:
            logger.info(f"Bind rejected for {target_id}: user has not followed")
            raise BindingError(code=ResultCode.NOT_FOLLOWED)

        recipient, created = self._attach(
            target, identity.platform_user_id, follow.nickname or identity.nickname
        )
        logger.info(
            f"Bind completed: {recipient.id} -> {target.id} ({bind_state.kind.value}, created={created})"
        )
        return BindOutcome(target=target, recipient=recipient, created=created, kind=bind_state.kind)

    def _attach(
        self,
        target: PushTarget,
        platform_user_id: str,
        nickname: Optional[str],
    ) -> tuple[Recipient, bool]:
        """single：替换为当前用户；subscribe：加入订阅者（已存在则幂等）"""
        if not target.is_fan_out:
            for existing in self.recipients.list_by_target(target.id):
                if existing.platform_user_id != platform_user_id:
                    self.recipients.delete(existing.id)
                    logger.info(f"Replaced recipient {existing.id} on {target.id}")
        return self.recipients.get_or_create(target.id, platform_user_id, nickname=nickname)

    def unbind(self, target_id: str, platform_user_id: str) -> Recipient:
        """解除绑定

        Raises:
            NotFoundError: APP_NOT_FOUND / OPENID_NOT_FOUND
        """
        self.targets.require(target_id)
        recipient = self.recipients.find_by_platform_user(target_id, platform_user_id)
        if recipient is None:
            raise NotFoundError(
                f"{platform_user_id} is not bound to {target_id}", ResultCode.OPENID_NOT_FOUND
            )
        self.recipients.delete(recipient.id)
        return recipient

    def bindings_for(self, platform_user_id: str) -> list[PushTarget]:
        """某平台用户绑定的全部推送目标"""
        targets = []
        for recipient in self.recipients.list_by_platform_user(platform_user_id):
            target = self.targets.get_by_id(recipient.target_id)
            if target and target not in targets:
                targets.append(target)
        return targets

    def handle_inbound_command(self, channel_id: str, platform_user_id: str, text: Optional[str]) -> CommandReply:
        """处理公众号文本消息中的绑定指令，并记录为 inbound 历史"""
        command = self.parser.parse(text)
        if command is None:
            if self.parser.is_help_request(text):
                reply = CommandReply(ResultCode.SUCCESS, f"📖 使用帮助\n\n{self.parser.help_message()}")
            else:
                reply = CommandReply(ResultCode.INVALID_PARAM, self.parser.help_message())
        else:
            reply = self._run_command(channel_id, platform_user_id, command)

        self._record_inbound(channel_id, platform_user_id, text or "", reply)
        return reply

    def _run_command(self, channel_id: str, platform_user_id: str, command: Command) -> CommandReply:
        label = _ACTION_LABELS[command.action]
        target = self.targets.get_by_key(command.key)
        if target is None or target.channel_id != channel_id:
            return CommandReply(
                ResultCode.KEY_NOT_FOUND,
                f"❌ {label}失败\n\n未找到 Key: {command.key}\n请检查 Key 是否正确。",
                command.action,
            )

        try:
            if command.action.is_attach:
                return self._attach_by_command(target, platform_user_id, command, label)
            self.unbind(target.id, platform_user_id)
        except NotFoundError as e:
            if e.code == ResultCode.OPENID_NOT_FOUND:
                bound_label = "订阅" if command.action == CommandAction.UNSUBSCRIBE else "绑定"
                message = f"❌ {label}失败\n\n您未{bound_label}该 Key。"
            else:
                message = f"❌ {label}失败\n\n{e.message}"
            return CommandReply(e.code, message, command.action, target.id)
        except PushError as e:
            return CommandReply(e.code, f"❌ {label}失败\n\n{e.message}", command.action, target.id)

        return CommandReply(ResultCode.SUCCESS, f"✅ {label}成功\n\n您已{label}该 Key。", command.action, target.id)

    def _attach_by_command(
        self,
        target: PushTarget,
        platform_user_id: str,
        command: Command,
        label: str,
    ) -> CommandReply:
        _, adapter, credentials = self._channel_for(target)
        follow = adapter.check_follow_status(credentials, platform_user_id)
        if not follow.subscribed:
            return CommandReply(
                ResultCode.NOT_FOLLOWED,
                f"❌ {label}失败\n\n请先关注公众号",
                command.action,
                target.id,
            )

        recipient, created = self._attach(target, platform_user_id, follow.nickname)
        if not created:
            code = ResultCode.ALREADY_SUBSCRIBED if target.is_fan_out else ResultCode.ALREADY_BOUND
            return CommandReply(code, f"ℹ️ 您已{label}该 Key", command.action, target.id)

        logger.info(f"Bind by command: {recipient.id} -> {target.id}")
        return CommandReply(
            ResultCode.SUCCESS,
            f"✅ {label}成功\n\n现在可以接收消息推送了。",
            command.action,
            target.id,
        )

    def _record_inbound(self, channel_id: str, platform_user_id: str, text: str, reply: CommandReply) -> None:
        if self.history is None:
            return
        record = DeliveryRecord(
            id=new_record_id(KeyPrefix.MESSAGE),
            direction=Direction.INBOUND,
            channel_id=channel_id,
            target_id=reply.target_id,
            title=text.strip().splitlines()[0][:64] if text.strip() else "",
            body=text,
            results=[
                DeliveryResult(
                    recipient_id="",
                    platform_user_id=platform_user_id,
                    success=reply.success,
                    error=None if reply.success else reply.code.name,
                )
            ],
            created_at=self._clock(),
        )
        self.history.append(record)
