"""
Core module containing configuration and shared utilities.
"""
from traderoom.core.config import settings
from traderoom.core.exceptions import (
    TradeError,
    TradeErrorCode,
    TradeTransitionError,
    TradeValidationError,
    TradeConflictError,
    TradeNotFoundError,
    ReviewError,
    ReviewErrorCode,
)

__all__ = [
    "settings",
    "TradeError",
    "TradeErrorCode",
    "TradeTransitionError",
    "TradeValidationError",
    "TradeConflictError",
    "TradeNotFoundError",
    "ReviewError",
    "ReviewErrorCode",
]
