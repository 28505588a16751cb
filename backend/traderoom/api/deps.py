"""
API dependencies for authentication and trade lookup.
"""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from traderoom.core.logging import bind_trade_context
from traderoom.core.slugs import is_valid_room_slug
from traderoom.db.session import get_db
from traderoom.models.trade import Trade
from traderoom.schemas.auth import AuthenticatedUser
from traderoom.services.auth import decode_access_token
from traderoom.services.trades import TradeService

# Security scheme for JWT bearer tokens
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AuthenticatedUser:
    """
    Get the current authenticated user from the JWT token.

    Raises HTTPException 401 if the token is missing or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_access_token(credentials.credentials)

    if not payload or not payload.sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AuthenticatedUser(id=payload.sub)


async def get_trade_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TradeService:
    return TradeService(db)


async def get_trade_or_404(
    room_slug: str,
    service: Annotated[TradeService, Depends(get_trade_service)],
) -> Trade:
    """
    Resolve the room slug in the path to a trade or raise 404.
    """
    trade = None
    if is_valid_room_slug(room_slug):
        trade = await service.get_trade_by_room_slug(room_slug)

    if not trade:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Trade not found")

    bind_trade_context(trade.id, trade.room_slug)
    return trade


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[AuthenticatedUser, Depends(get_current_user)]
Trades = Annotated[TradeService, Depends(get_trade_service)]
RoomTrade = Annotated[Trade, Depends(get_trade_or_404)]
