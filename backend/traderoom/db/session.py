"""
Database session management.

Provides async session factory and dependency injection for FastAPI.
"""
from collections.abc import AsyncGenerator
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from traderoom.core.config import settings

logger = structlog.get_logger()


def _engine_options(url: str) -> dict[str, Any]:
    """Pool and driver options; the server settings only apply to asyncpg."""
    if not url.startswith("postgresql+asyncpg"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": 20,
        "max_overflow": 30,
        "pool_recycle": 1800,
        "pool_timeout": 20,
        "connect_args": {
            "server_settings": {
                "statement_timeout": "25000",  # milliseconds
                "idle_in_transaction_session_timeout": "300000",
                "application_name": "trade_room_api",
            },
            "command_timeout": 25,
        },
    }


engine = create_async_engine(
    settings.database_url_computed,
    echo=settings.api_debug,
    **_engine_options(settings.database_url_computed),
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.

    Commits when the request handler returns, rolls back if it raises.

    Usage:
        @router.get("/trades/{room_slug}")
        async def get_trade(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(
                "db_session_rolled_back",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
