"""
Push Dispatcher - 推送调度器

负责：
- push key 解析
- 频率限制
- 接收者解析（single / subscribe）
- 并发投递与结果聚合
- 写入消息历史

Expected failures never raise: they come back as a PushResult carrying the
terminal code. Per-recipient upstream failures are recorded in the results and
do not stop delivery to the remaining recipients.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from src.business.errors import ConfigurationError, NotFoundError, PushError, ValidationError
from src.business.history.delivery_history import DeliveryHistory
from src.business.notification.channels.base import ChannelMessage, Credentials, SendResult
from src.business.notification.channels.registry import ChannelDispatch
from src.business.registry.channel_registry import ChannelRegistry
from src.business.registry.target_registry import TargetRegistry
from src.data.models.channel import Channel
from src.data.models.delivery import DeliveryRecord, DeliveryResult, Direction, PushResult
from src.data.models.recipient import Recipient
from src.data.models.target import MessageType, PushTarget
from src.engine.codes import ResultCode, default_message
from src.engine.keys import new_push_id
from src.engine.rate_limit import RateLimiter, utcnow

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


class PushDispatcher:
    """推送调度器

    使用方式：
        dispatcher = PushDispatcher(targets, channels, channel_dispatch, history)
        result = dispatcher.push("APK...", "标题", "内容")
        if result.code == ResultCode.SUCCESS:
            print(result.success_count, result.failed_count)
    """

    def __init__(
        self,
        targets: TargetRegistry,
        channels: ChannelRegistry,
        channel_dispatch: ChannelDispatch,
        history: DeliveryHistory,
        rate_limiter: Optional[RateLimiter] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Callable = utcnow,
    ) -> None:
        """初始化推送调度器

        Args:
            targets: 推送目标注册表（含接收者）
            channels: 渠道注册表
            channel_dispatch: 渠道适配器调度
            history: 消息历史
            rate_limiter: 频率限制器，默认 5 次/分钟
            max_workers: 并发投递线程数上限
        """
        self.targets = targets
        self.recipients = targets.recipients
        self.channels = channels
        self.channel_dispatch = channel_dispatch
        self.history = history
        self.rate_limiter = rate_limiter or RateLimiter(clock=clock)
        self.max_workers = max(1, max_workers)
        self._clock = clock

    def push(
        self,
        push_key: str,
        title: str,
        body: Optional[str] = None,
        url: Optional[str] = None,
    ) -> PushResult:
        """按 push key 推送

        Args:
            push_key: 推送 key
            title: 标题（必填）
            body: 正文
            url: 点击跳转链接（模板消息）

        Returns:
            PushResult: 成功时 code=SUCCESS，即使部分接收者失败
        """
        push_id = new_push_id()
        try:
            return self._push(push_id, push_key, title, body, url)
        except PushError as e:
            logger.warning(f"Push {push_id} rejected: {e.code.name} {e.message}")
            return PushResult(push_id=push_id, code=e.code, error=e.message)
        except Exception:
            logger.exception(f"Push {push_id} failed unexpectedly")
            return PushResult(
                push_id=push_id,
                code=ResultCode.INTERNAL_ERROR,
                error=default_message(ResultCode.INTERNAL_ERROR),
            )

    def _push(
        self,
        push_id: str,
        push_key: str,
        title: str,
        body: Optional[str],
        url: Optional[str],
    ) -> PushResult:
        # 1. 解析 push key
        target = self.targets.get_by_key(push_key)
        if target is None:
            raise NotFoundError(code=ResultCode.KEY_NOT_FOUND)

        if not title or not title.strip():
            raise ValidationError(code=ResultCode.MISSING_TITLE)

        # 2. 频率限制（拒绝时窗口不变）
        decision = self.rate_limiter.check(target.rate_window)
        if not decision.allowed:
            raise PushError(
                f"Rate limit exceeded, retry after {decision.reset_at.isoformat()}",
                ResultCode.RATE_LIMIT_EXCEEDED,
                detail={"reset_at": decision.reset_at.isoformat()},
            )

        # 3. 解析接收者
        recipients = self._resolve_recipients(target)

        # 4. 渠道配置
        channel = self._resolve_channel(target)

        # 5. 投递开始前持久化频率窗口：按尝试计数
        self.targets.save_rate_window(target.id, decision.next_window)

        logger.info(
            f"Push {push_id} accepted: target={target.id} mode={target.push_mode.value} "
            f"recipients={len(recipients)}"
        )

        # 6. 并发投递，等待全部完成
        results = self._fan_out(channel, target, recipients, title.strip(), body, url)

        # 7. 写入历史
        record = DeliveryRecord(
            id=push_id,
            direction=Direction.OUTBOUND,
            channel_id=channel.id,
            target_id=target.id,
            title=title.strip(),
            body=body,
            results=results,
            created_at=self._clock(),
        )
        self.history.append(record)

        result = PushResult(push_id=push_id, results=results)
        logger.info(
            f"Push {push_id} done: total={result.total} success={result.success_count} "
            f"failed={result.failed_count}"
        )
        return result

    def _resolve_recipients(self, target: PushTarget) -> list[Recipient]:
        recipients = self.recipients.list_by_target(target.id)
        if target.is_fan_out:
            if not recipients:
                raise NotFoundError(code=ResultCode.NO_SUBSCRIBERS)
            return recipients

        if not recipients:
            raise NotFoundError(code=ResultCode.OPENID_NOT_FOUND)
        return recipients[:1]

    def _resolve_channel(self, target: PushTarget) -> Channel:
        channel = self.channels.get_by_id(target.channel_id)
        if channel is None:
            raise ConfigurationError(f"Channel {target.channel_id} for app {target.id} is missing")
        if not channel.config.is_complete:
            raise ConfigurationError(f"Channel {channel.id} has incomplete credentials")
        if channel.type not in self.channel_dispatch:
            raise ConfigurationError(f"Unsupported channel type: {channel.type}")
        if target.message_type == MessageType.TEMPLATE and not target.template_id:
            raise ConfigurationError(f"App {target.id} uses template messages without template_id")
        return channel

    def _fan_out(
        self,
        channel: Channel,
        target: PushTarget,
        recipients: list[Recipient],
        title: str,
        body: Optional[str],
        url: Optional[str],
    ) -> list[DeliveryResult]:
        """并发发送，结果按接收者顺序返回"""
        if not recipients:
            return []

        credentials = Credentials.from_channel(channel)
        template_id = target.template_id if target.message_type == MessageType.TEMPLATE else None

        def send_one(recipient: Recipient) -> DeliveryResult:
            message = ChannelMessage(
                platform_user_id=recipient.platform_user_id,
                title=title,
                body=body,
                template_id=template_id,
                url=url,
            )
            try:
                send_result = self.channel_dispatch.send(channel.type, message, credentials)
            except Exception as e:
                logger.error(f"Send to {recipient.id} failed: {type(e).__name__}")
                send_result = SendResult.failed(str(e) or type(e).__name__)
            return DeliveryResult(
                recipient_id=recipient.id,
                platform_user_id=recipient.platform_user_id,
                success=send_result.is_success,
                external_id=send_result.message_id,
                error=None if send_result.is_success else send_result.error,
            )

        workers = min(self.max_workers, len(recipients))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(send_one, recipient) for recipient in recipients]
            return [future.result() for future in futures]
