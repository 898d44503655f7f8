"""
Delivery History - 消息历史记录

追加写入的投递记录，支持分页/筛选查询、统计和按保留天数清理。

Ordered indices (``msg_list`` globally, ``msg_app:{target_id}`` per target)
are maintained newest-first on write; ``list`` still sorts the filtered page
source by ``created_at`` so ordering holds even when concurrent appends land
out of order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from src.business.errors import NotFoundError, ValidationError
from src.business.registry import store_keys
from src.business.registry.base import BaseRegistry
from src.data.models.delivery import DeliveryRecord, Direction
from src.engine.codes import ResultCode
from src.engine.rate_limit import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass
class HistoryPage:
    """一页查询结果"""

    items: list[DeliveryRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": [r.to_dict() for r in self.items],
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
        }


@dataclass
class HistoryStats:
    """统计数据"""

    total: int = 0  # 记录数
    today: int = 0  # 今日记录数
    success: int = 0  # 成功投递次数
    failed: int = 0  # 失败投递次数

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "today": self.today,
            "success": self.success,
            "failed": self.failed,
        }


class DeliveryHistory(BaseRegistry):
    """消息历史

    使用方式：
        history = DeliveryHistory(store)
        history.append(record)
        page = history.list(page=1, page_size=20, target_id="app_...")
    """

    def append(self, record: DeliveryRecord) -> DeliveryRecord:
        """写入一条记录（主记录 → 全局列表 → 目标列表）"""
        self._store.put(store_keys.message(record.id), record.to_dict())
        self._append_to_list(store_keys.MESSAGE_LIST, record.id, front=True)
        if record.target_id:
            self._append_to_list(store_keys.messages_by_target(record.target_id), record.id, front=True)
        logger.debug(f"History appended: {record.id} ({record.direction.value})")
        return record

    def get(self, record_id: str) -> Optional[DeliveryRecord]:
        return self._load(store_keys.message(record_id), DeliveryRecord.from_dict)

    def require(self, record_id: str) -> DeliveryRecord:
        record = self.get(record_id)
        if record is None:
            raise NotFoundError(f"Message not found: {record_id}", ResultCode.MESSAGE_NOT_FOUND)
        return record

    def _records(self, target_id: Optional[str] = None) -> list[DeliveryRecord]:
        list_key = store_keys.messages_by_target(target_id) if target_id else store_keys.MESSAGE_LIST
        records = []
        for record_id in self._get_list(list_key):
            record = self.get(record_id)
            if record:
                records.append(record)
        return records

    def list(
        self,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        target_id: Optional[str] = None,
        start_date: datetime | str | None = None,
        end_date: datetime | str | None = None,
        direction: Direction | str | None = None,
    ) -> HistoryPage:
        """分页查询，按时间倒序

        Args:
            page: 页码（从 1 开始）
            page_size: 每页数量（1 ~ 100）
            target_id: 按推送目标筛选
            start_date: 起始时间（含）
            end_date: 结束时间（含）
            direction: 按方向筛选
        """
        if page < 1:
            raise ValidationError(f"page must be >= 1, got {page}")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}")

        try:
            start = parse_timestamp(start_date)
            end = parse_timestamp(end_date)
        except ValueError as e:
            raise ValidationError(f"Invalid date filter: {e}") from e

        if direction is not None:
            try:
                direction = Direction(direction)
            except ValueError as e:
                raise ValidationError(f"Invalid direction filter: {direction}") from e

        filtered = [
            r
            for r in self._records(target_id)
            if (start is None or r.created_at >= start)
            and (end is None or r.created_at <= end)
            and (direction is None or r.direction == direction)
        ]
        filtered.sort(key=lambda r: r.created_at, reverse=True)

        offset = (page - 1) * page_size
        return HistoryPage(
            items=filtered[offset:offset + page_size],
            total=len(filtered),
            page=page,
            page_size=page_size,
        )

    def delete(self, record_id: str) -> bool:
        """删除单条记录，不存在时返回 False"""
        record = self.get(record_id)
        if record is None:
            return False
        self._remove(record)
        return True

    def _remove(self, record: DeliveryRecord) -> None:
        self._safe_delete(store_keys.message(record.id))
        self._remove_from_list(store_keys.MESSAGE_LIST, record.id)
        if record.target_id:
            self._remove_from_list(store_keys.messages_by_target(record.target_id), record.id)

    def prune(self, retention_days: int) -> int:
        """删除早于 now - retention_days 的记录

        Returns:
            删除数量
        """
        if retention_days < 0:
            raise ValidationError(f"retention_days must be >= 0, got {retention_days}")

        cutoff = self._now() - timedelta(days=retention_days)
        expired: list[DeliveryRecord] = []
        for key in self._store.list_all(store_keys.MESSAGE_PREFIX):
            data = self._store.get(key)
            if not data:
                continue
            record = DeliveryRecord.from_dict(data)
            if record.created_at < cutoff:
                expired.append(record)

        if not expired:
            return 0

        expired_ids = {r.id for r in expired}
        for record in expired:
            self._safe_delete(store_keys.message(record.id))
        self._remove_from_list(store_keys.MESSAGE_LIST, expired_ids)
        for target_id in {r.target_id for r in expired if r.target_id}:
            self._remove_from_list(store_keys.messages_by_target(target_id), expired_ids)

        logger.info(f"History pruned: {len(expired)} records older than {retention_days} days")
        return len(expired)

    def stats(self) -> HistoryStats:
        """全局统计：记录数、今日记录数、成功/失败投递次数"""
        now = self._now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        stats = HistoryStats()
        for record in self._records():
            stats.total += 1
            if record.created_at >= today_start:
                stats.today += 1
            stats.success += record.success_count
            stats.failed += record.failed_count
        return stats
