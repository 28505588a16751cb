"""
SQLAlchemy models for the Trade Room application.
"""
from traderoom.models.trade import Trade, TradeItem, TradeHistory, TradeStatus
from traderoom.models.review import TradeReview

__all__ = [
    "Trade",
    "TradeItem",
    "TradeHistory",
    "TradeStatus",
    "TradeReview",
]
