"""
Endpoints scoped to the authenticated user.
"""
from typing import Literal, Optional

from fastapi import APIRouter, Query

from traderoom.api.deps import CurrentUser, Trades
from traderoom.schemas.trade import UserTradeListResponse, UserTradeSummary

router = APIRouter()


@router.get("/trades", response_model=UserTradeListResponse)
async def list_my_trades(
    current_user: CurrentUser,
    service: Trades,
    status: Literal["active", "completed", "all"] = Query("all"),
    limit: Optional[int] = Query(None, ge=1, le=100),
):
    """
    List trades the current user participates in.

    "completed" covers every final status (completed, canceled, disputed, expired).
    """
    trades = await service.get_user_trades(current_user.id, status_filter=status, limit=limit)
    return UserTradeListResponse(
        trades=[UserTradeSummary.model_validate(t) for t in trades]
    )
