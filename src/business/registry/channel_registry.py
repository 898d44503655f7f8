"""
Channel Registry - 渠道管理

管理消息发送渠道（如微信公众号）。渠道被任一推送目标引用时禁止删除。
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable

from src.business.errors import ConflictError, NotFoundError, ValidationError
from src.business.registry import store_keys
from src.business.registry.base import BaseRegistry, VerifyReport
from src.data.models.channel import Channel, ChannelConfig, ChannelType
from src.data.store.base import Store
from src.engine.codes import ResultCode
from src.engine.keys import KeyPrefix, new_record_id

logger = logging.getLogger(__name__)


class ChannelRegistry(BaseRegistry):
    """CRUD for :class:`Channel` records."""

    def __init__(
        self,
        store: Store,
        supported_types: Iterable[str] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(store, **kwargs)
        self._supported_types = set(supported_types or [t.value for t in ChannelType])

    def create(
        self,
        name: str,
        app_id: str,
        app_secret: str,
        channel_type: str = ChannelType.WECHAT.value,
    ) -> Channel:
        """创建渠道

        Raises:
            ValidationError: 缺少名称/凭证或渠道类型不支持
        """
        if not name or not name.strip():
            raise ValidationError("Channel name is required")
        if not app_id:
            raise ValidationError("app_id is required")
        if not app_secret:
            raise ValidationError("app_secret is required")
        if channel_type not in self._supported_types:
            raise ValidationError(
                f"Unsupported channel type {channel_type!r}; "
                f"expected one of: {', '.join(sorted(self._supported_types))}"
            )

        now = self._now()
        channel = Channel(
            id=new_record_id(KeyPrefix.CHANNEL),
            name=name.strip(),
            type=channel_type,
            config=ChannelConfig(app_id=app_id, app_secret=app_secret),
            created_at=now,
            updated_at=now,
        )

        self._store.put(store_keys.channel(channel.id), channel.to_dict())
        self._append_to_list(store_keys.CHANNEL_LIST, channel.id)

        logger.info(f"Channel created: {channel.id} ({channel.name})")
        return channel

    def get_by_id(self, channel_id: str) -> Channel | None:
        return self._load(store_keys.channel(channel_id), Channel.from_dict)

    def require(self, channel_id: str) -> Channel:
        channel = self.get_by_id(channel_id)
        if channel is None:
            raise NotFoundError(f"Channel not found: {channel_id}", ResultCode.CHANNEL_NOT_FOUND)
        return channel

    def list(self) -> list[Channel]:
        channels = []
        for channel_id in self._get_list(store_keys.CHANNEL_LIST):
            channel = self.get_by_id(channel_id)
            if channel:
                channels.append(channel)
        return channels

    def update(
        self,
        channel_id: str,
        name: str | None = None,
        app_id: str | None = None,
        app_secret: str | None = None,
    ) -> Channel:
        """更新渠道名称或凭证"""
        channel = self.require(channel_id)

        if name is not None:
            if not name.strip():
                raise ValidationError("Channel name cannot be empty")
            channel.name = name.strip()

        config = channel.config
        if app_id is not None:
            config = replace(config, app_id=app_id)
        if app_secret is not None:
            config = replace(config, app_secret=app_secret)
        channel.config = config
        channel.updated_at = self._now()

        self._store.put(store_keys.channel(channel_id), channel.to_dict())
        return channel

    def is_referenced(self, channel_id: str) -> bool:
        """检查渠道是否被推送目标引用"""
        for target_id in self._get_list(store_keys.TARGET_LIST):
            data = self._store.get(store_keys.target(target_id))
            if data and data.get("channel_id") == channel_id:
                return True
        return False

    def delete(self, channel_id: str) -> None:
        """删除渠道

        Raises:
            NotFoundError: 渠道不存在
            ConflictError: 渠道仍被引用
        """
        self.require(channel_id)
        if self.is_referenced(channel_id):
            raise ConflictError(
                f"Channel {channel_id} is referenced by apps and cannot be deleted",
                ResultCode.CHANNEL_IN_USE,
            )

        self._safe_delete(store_keys.channel(channel_id))
        self._remove_from_list(store_keys.CHANNEL_LIST, channel_id)
        logger.info(f"Channel deleted: {channel_id}")

    def verify(self, repair: bool = False) -> VerifyReport:
        """检查渠道列表与记录的一致性"""
        report = VerifyReport()
        listed = self._get_list(store_keys.CHANNEL_LIST)
        report.dangling_ids = [cid for cid in listed if self.get_by_id(cid) is None]

        stored = [
            key[len(store_keys.CHANNEL_PREFIX):]
            for key in self._store.list_all(store_keys.CHANNEL_PREFIX)
        ]
        report.unlisted_ids = [cid for cid in stored if cid not in listed]

        if repair and not report.is_consistent:
            self._remove_from_list(store_keys.CHANNEL_LIST, set(report.dangling_ids))
            for cid in report.unlisted_ids:
                self._append_to_list(store_keys.CHANNEL_LIST, cid)
            report.repaired = True
        return report
