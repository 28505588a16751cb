"""
Trade room API routes.

Endpoints:
- POST /trades - Open a trade room
- GET /trades/{room_slug} - Trade details
- GET /trades/{room_slug}/history - Status history
- POST /trades/{room_slug}/offer - Replace your offer (draft only)
- POST /trades/{room_slug}/propose - draft -> proposed
- POST /trades/{room_slug}/agree - proposed -> agreed
- POST /trades/{room_slug}/complete - Confirm the exchange (agreed -> completed once both confirm)
- POST /trades/{room_slug}/dispute - Escalate an agreed or completed trade
- POST /trades/{room_slug}/cancel - Cancel (restorable)
- POST /trades/{room_slug}/uncancel - Restore the pre-cancel status
- GET/POST /trades/{room_slug}/review - Reviews of a completed trade
"""
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from traderoom.api.deps import CurrentUser, RoomTrade, Trades
from traderoom.core.exceptions import (
    ReviewError,
    ReviewErrorCode,
    TradeConflictError,
    TradeError,
    TradeErrorCode,
    TradeNotFoundError,
    TradeTransitionError,
    TradeValidationError,
)
from traderoom.db.session import get_db
from traderoom.models.trade import Trade, TradeStatus
from traderoom.schemas.trade import (
    AgreeRequest,
    CreateReviewRequest,
    CreateTradeRequest,
    ReasonRequest,
    ReviewListResponse,
    ReviewResponse,
    SuccessResponse,
    TradeCreatedBrief,
    TradeCreatedResponse,
    TradeDetailEnvelope,
    TradeDetailResponse,
    TradeHistoryListResponse,
    TradeHistoryResponse,
    TradeItemResponse,
    TransitionResponse,
    UpdateOfferRequest,
)
from traderoom.services.reviews import ReviewService
from traderoom.services.trades import TradeService

router = APIRouter()

REVIEW_ERROR_STATUS = {
    ReviewErrorCode.NOT_PARTICIPANT: status.HTTP_403_FORBIDDEN,
    ReviewErrorCode.ALREADY_REVIEWED: status.HTTP_409_CONFLICT,
    ReviewErrorCode.INVALID_RATING: status.HTTP_400_BAD_REQUEST,
    ReviewErrorCode.TRADE_NOT_COMPLETED: status.HTTP_400_BAD_REQUEST,
}


def raise_http_error(error: TradeError) -> NoReturn:
    """Translate a trade-domain error into the matching HTTP error."""
    if isinstance(error, TradeTransitionError):
        code = (
            status.HTTP_403_FORBIDDEN
            if error.code == TradeErrorCode.UNAUTHORIZED
            else status.HTTP_400_BAD_REQUEST
        )
    elif isinstance(error, ReviewError):
        code = REVIEW_ERROR_STATUS[error.code]
    elif isinstance(error, TradeConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(error, TradeNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, TradeValidationError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        raise error
    raise HTTPException(status_code=code, detail=error.message) from error


def _build_trade_detail(trade: Trade) -> TradeDetailResponse:
    def items_of(user_id: Optional[str]) -> list[TradeItemResponse]:
        return [
            TradeItemResponse(
                card_id=item.card_id,
                quantity=item.quantity,
                offered_by_user_id=item.offered_by_user_id,
            )
            for item in trade.items_offered_by(user_id)
        ]

    return TradeDetailResponse(
        id=trade.id,
        room_slug=trade.room_slug,
        status=trade.status,
        status_before_cancel=trade.status_before_cancel,
        initiator_user_id=trade.initiator_user_id,
        responder_user_id=trade.responder_user_id,
        initiator_items=items_of(trade.initiator_user_id),
        responder_items=items_of(trade.responder_user_id),
        proposed_expired_at=trade.proposed_expired_at,
        agreed_expired_at=trade.agreed_expired_at,
        initiator_confirmed=trade.initiator_confirmed_at is not None,
        responder_confirmed=trade.responder_confirmed_at is not None,
        created_at=trade.created_at,
        updated_at=trade.updated_at,
    )


def _require_participant(trade: Trade, user_id: str) -> None:
    if not trade.is_participant(user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a participant in this trade",
        )


async def _transition(
    service: TradeService,
    trade: Trade,
    to_status: TradeStatus,
    user_id: str,
    **options,
) -> TransitionResponse:
    try:
        new_status = await service.transition_trade(trade, to_status, user_id, **options)
    except TradeError as e:
        raise_http_error(e)
    return TransitionResponse(status=new_status)


# Routes
@router.post("", response_model=TradeCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_trade(
    current_user: CurrentUser,
    service: Trades,
    request: Optional[CreateTradeRequest] = None,
):
    """Open a new trade room with the caller as initiator."""
    request = request or CreateTradeRequest()
    try:
        trade = await service.create_trade(
            initiator_user_id=current_user.id,
            responder_user_id=request.responder_user_id,
            proposed_expired_at=request.proposed_expired_at,
            initial_card_id=request.initial_card_id,
        )
    except TradeError as e:
        raise_http_error(e)

    return TradeCreatedResponse(
        trade=TradeCreatedBrief(id=trade.id, room_slug=trade.room_slug, status=trade.status)
    )


@router.get("/{room_slug}", response_model=TradeDetailEnvelope)
async def get_trade(current_user: CurrentUser, trade: RoomTrade):
    """
    Get a trade room.

    Open rooms (no responder yet) are visible to any signed-in user so a
    prospective responder can review the offer before agreeing. Once the
    responder is bound only the two participants can view it.
    """
    if trade.responder_user_id is not None:
        _require_participant(trade, current_user.id)
    return TradeDetailEnvelope(trade=_build_trade_detail(trade))


@router.get("/{room_slug}/history", response_model=TradeHistoryListResponse)
async def get_trade_history(current_user: CurrentUser, trade: RoomTrade, service: Trades):
    """Status history of a trade, oldest first."""
    _require_participant(trade, current_user.id)
    entries = await service.get_history(trade)
    return TradeHistoryListResponse(
        history=[TradeHistoryResponse.model_validate(entry) for entry in entries]
    )


@router.post("/{room_slug}/offer", response_model=SuccessResponse)
async def update_offer(
    request: UpdateOfferRequest,
    current_user: CurrentUser,
    trade: RoomTrade,
    service: Trades,
):
    """Replace the caller's offer."""
    try:
        await service.update_offer(
            trade,
            current_user.id,
            [item.model_dump() for item in request.items],
        )
    except TradeError as e:
        raise_http_error(e)
    return SuccessResponse()


@router.post("/{room_slug}/propose", response_model=TransitionResponse)
async def propose_trade(current_user: CurrentUser, trade: RoomTrade, service: Trades):
    """Finalize the offer for the counterparty (draft -> proposed)."""
    return await _transition(service, trade, TradeStatus.PROPOSED, current_user.id)


@router.post("/{room_slug}/agree", response_model=TransitionResponse)
async def agree_trade(
    current_user: CurrentUser,
    trade: RoomTrade,
    service: Trades,
    request: Optional[AgreeRequest] = None,
):
    """
    Agree to a proposed trade (proposed -> agreed).

    If no responder is bound yet the caller becomes the responder.
    """
    request = request or AgreeRequest()
    return await _transition(
        service,
        trade,
        TradeStatus.AGREED,
        current_user.id,
        agreed_expired_at=request.agreed_expired_at,
    )


@router.post("/{room_slug}/complete", response_model=TransitionResponse)
async def complete_trade(current_user: CurrentUser, trade: RoomTrade, service: Trades):
    """
    Confirm the exchange happened.

    Status stays agreed until both participants have confirmed.
    """
    return await _transition(service, trade, TradeStatus.COMPLETED, current_user.id)


@router.post("/{room_slug}/dispute", response_model=TransitionResponse)
async def dispute_trade(
    current_user: CurrentUser,
    trade: RoomTrade,
    service: Trades,
    request: Optional[ReasonRequest] = None,
):
    """Escalate an agreed or completed trade."""
    request = request or ReasonRequest()
    return await _transition(
        service, trade, TradeStatus.DISPUTED, current_user.id, reason=request.reason
    )


@router.post("/{room_slug}/cancel", response_model=TransitionResponse)
async def cancel_trade(
    current_user: CurrentUser,
    trade: RoomTrade,
    service: Trades,
    request: Optional[ReasonRequest] = None,
):
    """Cancel a trade. Can be undone with /uncancel."""
    request = request or ReasonRequest()
    return await _transition(
        service, trade, TradeStatus.CANCELED, current_user.id, reason=request.reason
    )


@router.post("/{room_slug}/uncancel", response_model=TransitionResponse)
async def uncancel_trade(current_user: CurrentUser, trade: RoomTrade, service: Trades):
    """Restore a canceled trade to its previous status."""
    try:
        restored = await service.uncancel_trade(trade, current_user.id)
    except TradeError as e:
        raise_http_error(e)
    return TransitionResponse(status=restored)


@router.post(
    "/{room_slug}/review",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    request: CreateReviewRequest,
    current_user: CurrentUser,
    trade: RoomTrade,
    db: AsyncSession = Depends(get_db),
):
    """Review the other participant of a completed trade."""
    service = ReviewService(db)
    try:
        review = await service.create_review(
            trade,
            current_user.id,
            rating=request.rating,
            comment=request.comment,
            is_public=request.is_public,
        )
    except TradeError as e:
        raise_http_error(e)
    return ReviewResponse.model_validate(review)


@router.get("/{room_slug}/review", response_model=ReviewListResponse)
async def list_reviews(
    current_user: CurrentUser,
    trade: RoomTrade,
    db: AsyncSession = Depends(get_db),
):
    """Reviews of a trade and whether the caller has left one."""
    service = ReviewService(db)
    reviews = await service.get_trade_reviews(trade)
    has_reviewed = await service.has_reviewed_trade(trade, current_user.id)
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        has_reviewed=has_reviewed,
    )
