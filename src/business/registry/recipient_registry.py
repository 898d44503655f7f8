"""
Recipient Registry - 接收者 (OpenID) 管理

接收者归属于推送目标，同一目标下同一平台用户只能绑定一次。
"""

import logging
from typing import Any

from src.business.errors import ConflictError, NotFoundError, ValidationError
from src.business.registry import store_keys
from src.business.registry.base import BaseRegistry, VerifyReport
from src.data.models.recipient import Recipient
from src.data.store.base import Store
from src.engine.codes import ResultCode
from src.engine.keys import KeyPrefix, new_record_id

logger = logging.getLogger(__name__)


class RecipientRegistry(BaseRegistry):
    """CRUD for :class:`Recipient` records.

    Indices:
        ``oid_idx:{target_id}:{platform_user_id}`` -> recipient id (uniqueness)
        ``oid_app:{target_id}`` -> ordered recipient ids (first = primary)
    """

    def __init__(self, store: Store, **kwargs: Any) -> None:
        super().__init__(store, **kwargs)

    def create(
        self,
        target_id: str,
        platform_user_id: str,
        nickname: str | None = None,
        remark: str | None = None,
    ) -> Recipient:
        """在指定推送目标下创建接收者

        Raises:
            ValidationError: platform_user_id 为空
            NotFoundError: 推送目标不存在
            ConflictError: 同一目标下已存在该用户
        """
        if not platform_user_id or not platform_user_id.strip():
            raise ValidationError("platform_user_id is required")
        platform_user_id = platform_user_id.strip()

        if self._store.get(store_keys.target(target_id)) is None:
            raise NotFoundError(f"App not found: {target_id}", ResultCode.APP_NOT_FOUND)

        if self.find_by_platform_user(target_id, platform_user_id) is not None:
            raise ConflictError(
                f"OpenID {platform_user_id} already bound to {target_id}",
                ResultCode.ALREADY_SUBSCRIBED,
            )

        now = self._now()
        recipient = Recipient(
            id=new_record_id(KeyPrefix.RECIPIENT),
            target_id=target_id,
            platform_user_id=platform_user_id,
            nickname=nickname.strip() if nickname else None,
            remark=remark.strip() if remark else None,
            created_at=now,
            updated_at=now,
        )

        self._store.put(store_keys.recipient(recipient.id), recipient.to_dict())
        self._store.put(store_keys.recipient_index(target_id, platform_user_id), recipient.id)
        self._append_to_list(store_keys.recipients_by_target(target_id), recipient.id)

        logger.info(f"Recipient {recipient.id} attached to {target_id}")
        return recipient

    def get_or_create(
        self,
        target_id: str,
        platform_user_id: str,
        nickname: str | None = None,
    ) -> tuple[Recipient, bool]:
        """获取或创建接收者

        Returns:
            (recipient, created)
        """
        existing = self.find_by_platform_user(target_id, platform_user_id)
        if existing is not None:
            if nickname and not existing.nickname:
                existing = self.update(existing.id, nickname=nickname)
            return existing, False
        return self.create(target_id, platform_user_id, nickname=nickname), True

    def get_by_id(self, recipient_id: str) -> Recipient | None:
        return self._load(store_keys.recipient(recipient_id), Recipient.from_dict)

    def require(self, recipient_id: str) -> Recipient:
        recipient = self.get_by_id(recipient_id)
        if recipient is None:
            raise NotFoundError(f"OpenID not found: {recipient_id}", ResultCode.OPENID_NOT_FOUND)
        return recipient

    def find_by_platform_user(self, target_id: str, platform_user_id: str) -> Recipient | None:
        """通过唯一性索引查找；索引陈旧时返回 None"""
        recipient_id = self._store.get(store_keys.recipient_index(target_id, platform_user_id))
        if not recipient_id:
            return None
        recipient = self.get_by_id(recipient_id)
        if (
            recipient is None
            or recipient.target_id != target_id
            or recipient.platform_user_id != platform_user_id
        ):
            return None
        return recipient

    def exists(self, target_id: str, platform_user_id: str) -> bool:
        return self.find_by_platform_user(target_id, platform_user_id) is not None

    def list_by_target(self, target_id: str) -> list[Recipient]:
        return self.get_many(self._get_list(store_keys.recipients_by_target(target_id)))

    def count_by_target(self, target_id: str) -> int:
        return len(self._get_list(store_keys.recipients_by_target(target_id)))

    def get_many(self, recipient_ids: list[str]) -> list[Recipient]:
        """批量获取，跳过已删除的记录"""
        records = []
        for recipient_id in recipient_ids:
            recipient = self.get_by_id(recipient_id)
            if recipient:
                records.append(recipient)
        return records

    def list_by_platform_user(self, platform_user_id: str) -> list[Recipient]:
        """某个平台用户在所有目标下的绑定记录"""
        records = []
        for key in self._store.list_all(store_keys.RECIPIENT_PREFIX):
            data = self._store.get(key)
            if data and data.get("platform_user_id") == platform_user_id:
                records.append(Recipient.from_dict(data))
        return records

    def update(
        self,
        recipient_id: str,
        nickname: str | None = None,
        remark: str | None = None,
    ) -> Recipient:
        """更新昵称或备注；传入空字符串表示清除"""
        recipient = self.require(recipient_id)

        if nickname is not None:
            recipient.nickname = nickname.strip() or None
        if remark is not None:
            recipient.remark = remark.strip() or None
        recipient.updated_at = self._now()

        self._store.put(store_keys.recipient(recipient_id), recipient.to_dict())
        return recipient

    def delete(self, recipient_id: str) -> None:
        """删除接收者及其索引"""
        recipient = self.require(recipient_id)

        self._safe_delete(store_keys.recipient_index(recipient.target_id, recipient.platform_user_id))
        self._safe_delete(store_keys.recipient(recipient_id))
        self._remove_from_list(store_keys.recipients_by_target(recipient.target_id), recipient_id)

        logger.info(f"Recipient {recipient_id} detached from {recipient.target_id}")

    def delete_by_target(self, target_id: str) -> int:
        """删除目标下的全部接收者

        Store failures propagate; the target's list key is removed last so an
        interrupted cascade can be resumed by calling this again.

        Returns:
            删除的记录数
        """
        list_key = store_keys.recipients_by_target(target_id)
        count = 0
        for recipient_id in self._get_list(list_key):
            recipient = self.get_by_id(recipient_id)
            if recipient:
                self._safe_delete(
                    store_keys.recipient_index(target_id, recipient.platform_user_id)
                )
                self._safe_delete(store_keys.recipient(recipient_id))
                count += 1

        self._safe_delete(list_key)
        return count

    def verify(self, repair: bool = False) -> VerifyReport:
        """检查唯一性索引与目标列表的一致性"""
        report = VerifyReport()

        for key in self._store.list_all(store_keys.RECIPIENT_INDEX_PREFIX):
            recipient_id = self._store.get(key)
            recipient = self.get_by_id(recipient_id) if recipient_id else None
            expected = (
                store_keys.recipient_index(recipient.target_id, recipient.platform_user_id)
                if recipient
                else None
            )
            if expected != key:
                report.stale_index_keys.append(key)

        listed: set[str] = set()
        for list_key in self._store.list_all(store_keys.RECIPIENTS_BY_TARGET_PREFIX):
            ids = self._get_list(list_key)
            listed.update(ids)
            dangling = [rid for rid in ids if self.get_by_id(rid) is None]
            report.dangling_ids.extend(dangling)
            if repair and dangling:
                self._remove_from_list(list_key, set(dangling))

        for key in self._store.list_all(store_keys.RECIPIENT_PREFIX):
            recipient_id = key[len(store_keys.RECIPIENT_PREFIX):]
            if recipient_id not in listed:
                report.unlisted_ids.append(recipient_id)
                continue
            recipient = self.get_by_id(recipient_id)
            if recipient is None:
                continue
            index_key = store_keys.recipient_index(recipient.target_id, recipient.platform_user_id)
            if self._store.get(index_key) != recipient_id:
                report.unindexed_ids.append(recipient_id)

        if repair and not report.is_consistent:
            for key in report.stale_index_keys:
                self._store.delete(key)
            for recipient_id in report.unindexed_ids:
                recipient = self.get_by_id(recipient_id)
                if recipient is None:
                    continue
                self._store.put(
                    store_keys.recipient_index(recipient.target_id, recipient.platform_user_id),
                    recipient.id,
                )
            for recipient_id in report.unlisted_ids:
                recipient = self.get_by_id(recipient_id)
                if recipient is None:
                    continue
                if self._store.get(store_keys.target(recipient.target_id)) is None:
                    # orphan of a deleted target
                    self._store.delete(store_keys.recipient(recipient_id))
                else:
                    self._store.put(
                        store_keys.recipient_index(recipient.target_id, recipient.platform_user_id),
                        recipient.id,
                    )
                    self._append_to_list(
                        store_keys.recipients_by_target(recipient.target_id), recipient.id
                    )
            report.repaired = True

        return report
