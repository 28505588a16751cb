"""
Tests for the atomic() transaction context manager.
"""
import pytest
from sqlalchemy import select

from traderoom.core.exceptions import TradeValidationError
from traderoom.db.transaction import atomic
from traderoom.models import Trade, TradeStatus


def make_trade(slug: str) -> Trade:
    return Trade(room_slug=slug, initiator_user_id="user-alice", status=TradeStatus.DRAFT)


async def find(db_session, slug: str):
    result = await db_session.execute(select(Trade).where(Trade.room_slug == slug))
    return result.scalar_one_or_none()


@pytest.mark.asyncio
async def test_atomic_commits_on_success(db_session):
    """Atomic context commits all changes on success."""
    async with atomic(db_session) as session:
        session.add(make_trade("atomic-ok"))

    await db_session.rollback()
    assert await find(db_session, "atomic-ok") is not None


@pytest.mark.asyncio
async def test_atomic_rollbacks_on_failure(db_session):
    """Atomic context rolls back all changes on exception."""
    with pytest.raises(ValueError):
        async with atomic(db_session) as session:
            session.add(make_trade("atomic-fail"))
            await session.flush()
            raise ValueError("Simulated failure")

    assert await find(db_session, "atomic-fail") is None


@pytest.mark.asyncio
async def test_atomic_reraises_domain_errors(db_session):
    """Domain errors roll back and propagate unchanged."""
    with pytest.raises(TradeValidationError, match="rejected"):
        async with atomic(db_session) as session:
            session.add(make_trade("atomic-domain"))
            await session.flush()
            raise TradeValidationError("rejected")

    assert await find(db_session, "atomic-domain") is None
