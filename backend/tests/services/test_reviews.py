"""
Tests for post-trade reviews.
"""
import pytest

from traderoom.core.exceptions import ReviewError, ReviewErrorCode, TradeNotFoundError
from traderoom.services.reviews import ReviewService

ALICE = "user-alice"
BOB = "user-bob"
MALLORY = "user-mallory"


@pytest.fixture
def review_service(db_session) -> ReviewService:
    return ReviewService(db_session)


@pytest.mark.asyncio
async def test_participant_reviews_partner(review_service, completed_trade):
    review = await review_service.create_review(completed_trade, ALICE, rating=5, comment="Smooth trade")

    assert review.reviewer_user_id == ALICE
    assert review.reviewee_user_id == BOB
    assert review.rating == 5
    assert review.is_public is True
    assert await review_service.has_reviewed_trade(completed_trade, ALICE)
    assert not await review_service.has_reviewed_trade(completed_trade, BOB)


@pytest.mark.asyncio
async def test_both_participants_can_review(review_service, completed_trade):
    await review_service.create_review(completed_trade, ALICE, rating=4)
    await review_service.create_review(completed_trade, BOB, rating=3, is_public=False)

    reviews = await review_service.get_trade_reviews(completed_trade)
    assert {r.reviewer_user_id for r in reviews} == {ALICE, BOB}


@pytest.mark.asyncio
async def test_duplicate_review(review_service, completed_trade):
    await review_service.create_review(completed_trade, ALICE, rating=4)

    with pytest.raises(ReviewError) as exc_info:
        await review_service.create_review(completed_trade, ALICE, rating=2)
    assert exc_info.value.code == ReviewErrorCode.ALREADY_REVIEWED


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [0, 6, -1])
async def test_rating_out_of_range(review_service, completed_trade, rating):
    with pytest.raises(ReviewError) as exc_info:
        await review_service.create_review(completed_trade, ALICE, rating=rating)
    assert exc_info.value.code == ReviewErrorCode.INVALID_RATING


@pytest.mark.asyncio
async def test_outsider_cannot_review(review_service, completed_trade):
    with pytest.raises(ReviewError) as exc_info:
        await review_service.create_review(completed_trade, MALLORY, rating=5)
    assert exc_info.value.code == ReviewErrorCode.NOT_PARTICIPANT


@pytest.mark.asyncio
async def test_trade_must_be_completed(review_service, agreed_trade):
    with pytest.raises(ReviewError) as exc_info:
        await review_service.create_review(agreed_trade, ALICE, rating=5)
    assert exc_info.value.code == ReviewErrorCode.TRADE_NOT_COMPLETED


@pytest.mark.asyncio
async def test_missing_trade(review_service):
    with pytest.raises(TradeNotFoundError):
        await review_service.create_review(None, ALICE, rating=5)
