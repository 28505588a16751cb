"""
Pytest configuration and fixtures.

Provides fixtures for:
- Database sessions on a fresh in-memory SQLite database per test
- HTTP client wired to the test session
- Auth headers for test users
- Trades in each stage of negotiation
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from traderoom.db.base import Base
from traderoom.db.session import get_db
from traderoom.main import app
from traderoom.models import Trade, TradeHistory, TradeStatus
from traderoom.services.auth import create_access_token
from traderoom.services.trades import TradeService

# Use SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

INITIATOR = "user-alice"
RESPONDER = "user-bob"
OUTSIDER = "user-mallory"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client using the test database session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def service(db_session) -> TradeService:
    return TradeService(db_session)


# -----------------------------------------------------------------------------
# Auth Fixtures
# -----------------------------------------------------------------------------

def _bearer(user_id: str) -> dict:
    token = create_access_token(user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Factory for bearer headers of an arbitrary user id."""
    return _bearer


@pytest.fixture
def initiator_headers() -> dict:
    return _bearer(INITIATOR)


@pytest.fixture
def responder_headers() -> dict:
    return _bearer(RESPONDER)


@pytest.fixture
def outsider_headers() -> dict:
    return _bearer(OUTSIDER)


# -----------------------------------------------------------------------------
# Trade Fixtures
# -----------------------------------------------------------------------------

@pytest_asyncio.fixture
async def draft_trade(service) -> Trade:
    """Draft trade with both participants bound."""
    return await service.create_trade(INITIATOR, responder_user_id=RESPONDER)


@pytest_asyncio.fixture
async def open_trade(service) -> Trade:
    """Draft trade waiting for someone to take the other side."""
    return await service.create_trade(INITIATOR)


@pytest_asyncio.fixture
async def proposed_trade(service, draft_trade) -> Trade:
    await service.transition_trade(draft_trade, TradeStatus.PROPOSED, INITIATOR)
    return draft_trade


@pytest_asyncio.fixture
async def agreed_trade(service, proposed_trade) -> Trade:
    await service.transition_trade(proposed_trade, TradeStatus.AGREED, RESPONDER)
    return proposed_trade


@pytest_asyncio.fixture
async def completed_trade(service, agreed_trade) -> Trade:
    await service.transition_trade(agreed_trade, TradeStatus.COMPLETED, INITIATOR)
    await service.transition_trade(agreed_trade, TradeStatus.COMPLETED, RESPONDER)
    return agreed_trade


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

@pytest.fixture
def history_count(db_session):
    """Count the history rows of a trade."""

    async def _count(trade_id: int) -> int:
        result = await db_session.execute(
            select(func.count(TradeHistory.id)).where(TradeHistory.trade_id == trade_id)
        )
        return result.scalar_one()

    return _count


@pytest.fixture
def reload_trade(db_session):
    """Re-read a trade from the database, discarding in-memory state."""

    async def _reload(trade_id: int) -> Trade:
        return await db_session.get(Trade, trade_id, populate_existing=True)

    return _reload
