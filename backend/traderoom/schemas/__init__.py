"""
Pydantic schemas for API request/response validation.
"""
from traderoom.schemas.auth import AuthenticatedUser, TokenPayload
from traderoom.schemas.trade import (
    AgreeRequest,
    CreateReviewRequest,
    CreateTradeRequest,
    OfferItemRequest,
    ReasonRequest,
    ReviewListResponse,
    ReviewResponse,
    SuccessResponse,
    TradeCreatedResponse,
    TradeDetailEnvelope,
    TradeDetailResponse,
    TradeHistoryListResponse,
    TradeItemResponse,
    TransitionResponse,
    UpdateOfferRequest,
    UserTradeListResponse,
    UserTradeSummary,
)

__all__ = [
    "AuthenticatedUser",
    "TokenPayload",
    "AgreeRequest",
    "CreateReviewRequest",
    "CreateTradeRequest",
    "OfferItemRequest",
    "ReasonRequest",
    "ReviewListResponse",
    "ReviewResponse",
    "SuccessResponse",
    "TradeCreatedResponse",
    "TradeDetailEnvelope",
    "TradeDetailResponse",
    "TradeHistoryListResponse",
    "TradeItemResponse",
    "TransitionResponse",
    "UpdateOfferRequest",
    "UserTradeListResponse",
    "UserTradeSummary",
]
