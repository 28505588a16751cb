"""
Transaction management utilities.

Provides context managers for explicit transaction boundaries
to prevent partial commits on multi-step operations.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from traderoom.core.exceptions import TradeError

logger = structlog.get_logger()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Execute operations atomically - all or nothing.

    Usage:
        async with atomic(db) as session:
            session.add(trade)
            session.add(history_row)
            # Auto-commits on success, auto-rollbacks on exception

    Domain errors (lost races, rejected input) are logged at info level;
    anything else is logged as an error. Both are re-raised.
    """
    try:
        yield db
        await db.commit()
    except TradeError as e:
        await db.rollback()
        logger.info(
            "trade_transaction_rolled_back",
            error=e.message,
            error_type=type(e).__name__,
        )
        raise
    except Exception as e:
        await db.rollback()
        logger.error("trade_transaction_rolled_back", error=str(e), exc_info=True)
        raise

