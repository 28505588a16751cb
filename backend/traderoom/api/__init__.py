"""
API module for FastAPI routes.
"""
from fastapi import APIRouter

from traderoom.api.routes import health, me, trades

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(trades.router, prefix="/trades", tags=["Trades"])
api_router.include_router(me.router, prefix="/me", tags=["Me"])
