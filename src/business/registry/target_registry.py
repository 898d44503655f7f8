"""
Target Registry - 推送目标 (App) 管理

推送目标关联渠道和接收者，对外以 push key 标识：
- single 模式：只发送给第一个绑定的接收者
- subscribe 模式：发送给所有订阅者
"""

from __future__ import annotations

import logging
from typing import Any

from src.business.errors import NotFoundError, ValidationError
from src.business.registry import store_keys
from src.business.registry.base import BaseRegistry, VerifyReport
from src.business.registry.recipient_registry import RecipientRegistry
from src.data.models.target import MessageType, PushMode, PushTarget
from src.data.store.base import Store
from src.engine.codes import ResultCode
from src.engine.keys import KeyPrefix, is_valid_push_key, new_push_key, new_record_id
from src.engine.rate_limit import RateWindow

logger = logging.getLogger(__name__)


def _parse_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}") from None


class TargetRegistry(BaseRegistry):
    """CRUD for :class:`PushTarget` records.

    Indices:
        ``app_idx:{push_key}`` -> target id
        ``app_list`` -> ordered target ids
    """

    def __init__(
        self,
        store: Store,
        recipients: RecipientRegistry | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(store, **kwargs)
        self.recipients = recipients if recipients is not None else RecipientRegistry(store, **kwargs)

    def create(
        self,
        name: str,
        channel_id: str,
        push_mode: PushMode | str = PushMode.SINGLE,
        message_type: MessageType | str = MessageType.NORMAL,
        template_id: str | None = None,
    ) -> PushTarget:
        """创建推送目标

        Raises:
            ValidationError: 参数非法或模板消息缺少 template_id
            NotFoundError: 渠道不存在
        """
        if not name or not name.strip():
            raise ValidationError("App name is required")
        if not channel_id:
            raise ValidationError("channel_id is required")

        push_mode = _parse_enum(PushMode, push_mode, "push_mode")
        message_type = _parse_enum(MessageType, message_type, "message_type")

        if message_type == MessageType.TEMPLATE and not template_id:
            raise ValidationError("template_id is required when message_type is template")

        if self._store.get(store_keys.channel(channel_id)) is None:
            raise NotFoundError(f"Channel not found: {channel_id}", ResultCode.CHANNEL_NOT_FOUND)

        now = self._now()
        target = PushTarget(
            id=new_record_id(KeyPrefix.TARGET),
            key=new_push_key(),
            name=name.strip(),
            channel_id=channel_id,
            push_mode=push_mode,
            message_type=message_type,
            template_id=template_id or None,
            created_at=now,
            updated_at=now,
        )

        # 主记录 → key 索引 → 列表
        self._store.put(store_keys.target(target.id), target.to_dict())
        self._store.put(store_keys.target_index(target.key), target.id)
        self._append_to_list(store_keys.TARGET_LIST, target.id)

        logger.info(f"App created: {target.id} ({target.name}, mode={target.push_mode.value})")
        return target

    def get_by_id(self, target_id: str) -> PushTarget | None:
        return self._load(store_keys.target(target_id), PushTarget.from_dict)

    def require(self, target_id: str) -> PushTarget:
        target = self.get_by_id(target_id)
        if target is None:
            raise NotFoundError(f"App not found: {target_id}", ResultCode.APP_NOT_FOUND)
        return target

    def get_by_key(self, push_key: str) -> PushTarget | None:
        """通过 push key 查找

        Returns None for malformed keys without touching the store, and for
        index entries whose record is missing or carries a different key.
        """
        if not is_valid_push_key(push_key):
            return None
        target_id = self._store.get(store_keys.target_index(push_key))
        if not target_id:
            return None
        target = self.get_by_id(target_id)
        if target is None or target.key != push_key:
            logger.warning(f"Stale key index for target {target_id}")
            return None
        return target

    def list(self) -> list[PushTarget]:
        targets = []
        for target_id in self._get_list(store_keys.TARGET_LIST):
            target = self.get_by_id(target_id)
            if target:
                targets.append(target)
        return targets

    def list_by_channel(self, channel_id: str) -> list[PushTarget]:
        return [t for t in self.list() if t.channel_id == channel_id]

    def count_recipients(self, target_id: str) -> int:
        return self.recipients.count_by_target(target_id)

    def update(
        self,
        target_id: str,
        name: str | None = None,
        template_id: str | None = None,
    ) -> PushTarget:
        """更新名称或模板 ID；key、渠道和推送模式不可变"""
        target = self.require(target_id)

        if name is not None:
            if not name.strip():
                raise ValidationError("App name cannot be empty")
            target.name = name.strip()

        if template_id is not None:
            target.template_id = template_id or None

        if target.message_type == MessageType.TEMPLATE and not target.template_id:
            raise ValidationError("template_id is required when message_type is template")

        target.updated_at = self._now()
        self._store.put(store_keys.target(target_id), target.to_dict())
        return target

    def save_rate_window(self, target_id: str, window: RateWindow) -> None:
        """持久化频率窗口 (last-writer-wins)"""
        data = self._store.get(store_keys.target(target_id))
        if data is None:
            return
        data["rate_window"] = window.to_dict()
        self._store.put(store_keys.target(target_id), data)

    def delete(self, target_id: str) -> int:
        """删除推送目标（级联删除接收者）

        Recipients go first: if the cascade fails the target is still in place
        and the error propagates, so no recipient outlives its target.

        Returns:
            级联删除的接收者数量
        """
        target = self.require(target_id)

        removed = self.recipients.delete_by_target(target_id)

        self._safe_delete(store_keys.target_index(target.key))
        self._safe_delete(store_keys.target(target_id))
        self._remove_from_list(store_keys.TARGET_LIST, target_id)

        logger.info(f"App deleted: {target_id} (cascade {removed} recipients)")
        return removed

    def verify(self, repair: bool = False) -> VerifyReport:
        """检查 key 索引、列表与记录的一致性"""
        report = VerifyReport()
        listed = self._get_list(store_keys.TARGET_LIST)
        report.dangling_ids = [tid for tid in listed if self.get_by_id(tid) is None]

        for key in self._store.list_all(store_keys.TARGET_INDEX_PREFIX):
            push_key = key[len(store_keys.TARGET_INDEX_PREFIX):]
            target_id = self._store.get(key)
            target = self.get_by_id(target_id) if target_id else None
            if target is None or target.key != push_key:
                report.stale_index_keys.append(key)

        stored = [
            key[len(store_keys.TARGET_PREFIX):]
            for key in self._store.list_all(store_keys.TARGET_PREFIX)
        ]
        report.unlisted_ids = [tid for tid in stored if tid not in listed]
        for target_id in stored:
            target = self.get_by_id(target_id)
            if target and self._store.get(store_keys.target_index(target.key)) != target.id:
                report.unindexed_ids.append(target_id)

        if repair and not report.is_consistent:
            self._remove_from_list(store_keys.TARGET_LIST, set(report.dangling_ids))
            for key in report.stale_index_keys:
                self._store.delete(key)
            for target_id in report.unindexed_ids:
                target = self.get_by_id(target_id)
                if target:
                    self._store.put(store_keys.target_index(target.key), target.id)
            for target_id in report.unlisted_ids:
                self._append_to_list(store_keys.TARGET_LIST, target_id)
            report.repaired = True

        return report
