"""
Trade room Pydantic schemas.

Request and response bodies use camelCase on the wire.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from traderoom.models.trade import TradeStatus


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Requests

class CreateTradeRequest(CamelModel):
    """Request to open a trade room."""
    responder_user_id: Optional[str] = Field(None, min_length=1, max_length=64)
    proposed_expired_at: Optional[datetime] = None
    initial_card_id: Optional[str] = Field(None, min_length=1, max_length=64)


class OfferItemRequest(CamelModel):
    """Card in an offer."""
    card_id: str = Field(..., min_length=1, max_length=64)
    quantity: int = Field(1, ge=1)


class UpdateOfferRequest(CamelModel):
    """Full replacement of the caller's offer. An empty list clears it."""
    items: list[OfferItemRequest]


class AgreeRequest(CamelModel):
    agreed_expired_at: Optional[datetime] = None


class ReasonRequest(CamelModel):
    """Body for cancel and dispute."""
    reason: Optional[str] = Field(None, max_length=1000)


# Responses

class TradeCreatedBrief(CamelModel):
    id: int
    room_slug: str
    status: TradeStatus


class TradeCreatedResponse(CamelModel):
    trade: TradeCreatedBrief


class TransitionResponse(CamelModel):
    """Result of a status-changing call."""
    success: bool = True
    status: TradeStatus


class SuccessResponse(CamelModel):
    success: bool = True


class TradeItemResponse(CamelModel):
    """Item in a trade offer."""
    card_id: str
    quantity: int
    offered_by_user_id: str


class TradeDetailResponse(CamelModel):
    """Full state of a trade room."""
    id: int
    room_slug: str
    status: TradeStatus
    status_before_cancel: Optional[TradeStatus] = None
    initiator_user_id: str
    responder_user_id: Optional[str] = None
    initiator_items: list[TradeItemResponse]
    responder_items: list[TradeItemResponse]
    proposed_expired_at: Optional[datetime] = None
    agreed_expired_at: Optional[datetime] = None
    initiator_confirmed: bool
    responder_confirmed: bool
    created_at: datetime
    updated_at: datetime


class TradeDetailEnvelope(CamelModel):
    trade: TradeDetailResponse


class TradeHistoryResponse(CamelModel):
    """One status change."""
    from_status: Optional[TradeStatus] = None
    to_status: TradeStatus
    changed_by_user_id: str
    reason: Optional[str] = None
    created_at: datetime


class TradeHistoryListResponse(CamelModel):
    history: list[TradeHistoryResponse]


class UserTradeSummary(CamelModel):
    """Trade as listed on the caller's dashboard."""
    id: int
    room_slug: str
    status: TradeStatus
    partner_user_id: Optional[str] = None
    is_initiator: bool
    my_item_count: int
    their_item_count: int
    created_at: datetime
    updated_at: datetime


class UserTradeListResponse(CamelModel):
    trades: list[UserTradeSummary]


# Reviews

class CreateReviewRequest(CamelModel):
    # Range is checked by ReviewService so the error carries INVALID_RATING
    rating: int
    comment: Optional[str] = Field(None, max_length=2000)
    is_public: bool = True


class ReviewResponse(CamelModel):
    id: int
    trade_id: int
    reviewer_user_id: str
    reviewee_user_id: str
    rating: int
    comment: Optional[str] = None
    is_public: bool
    created_at: datetime


class ReviewListResponse(CamelModel):
    reviews: list[ReviewResponse]
    has_reviewed: bool
