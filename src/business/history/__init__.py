"""
Delivery History - 消息历史
"""

from src.business.history.delivery_history import DeliveryHistory, HistoryPage, HistoryStats

__all__ = ["DeliveryHistory", "HistoryPage", "HistoryStats"]
