"""
Review service for post-trade feedback.

Handles:
- Creating one review per participant for a completed trade
- Listing a trade's reviews
"""
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from traderoom.core.exceptions import ReviewError, ReviewErrorCode, TradeNotFoundError
from traderoom.db.transaction import atomic
from traderoom.models.review import TradeReview
from traderoom.models.trade import Trade, TradeStatus

logger = get_logger()


class ReviewService:
    """Service for managing trade reviews."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_review(
        self,
        trade: Trade | None,
        reviewer_user_id: str,
        rating: int,
        comment: str | None = None,
        is_public: bool = True,
    ) -> TradeReview:
        """
        Create a review of the other participant.

        Args:
            trade: Completed trade being reviewed
            reviewer_user_id: Participant leaving the review
            rating: Rating 1-5
            comment: Optional comment
            is_public: Whether the review is shown on profiles

        Returns:
            The created review

        Raises:
            ReviewError: Invalid rating, non-participant, trade not completed,
                or already reviewed
        """
        if trade is None:
            raise TradeNotFoundError("Trade not found")

        if isinstance(rating, bool) or not isinstance(rating, int) or rating < 1 or rating > 5:
            raise ReviewError("Rating must be between 1 and 5", ReviewErrorCode.INVALID_RATING)

        if not trade.is_participant(reviewer_user_id):
            raise ReviewError(
                "You are not a participant in this trade",
                ReviewErrorCode.NOT_PARTICIPANT,
            )

        if trade.status != TradeStatus.COMPLETED:
            raise ReviewError("Trade is not completed", ReviewErrorCode.TRADE_NOT_COMPLETED)

        if await self.has_reviewed_trade(trade, reviewer_user_id):
            raise ReviewError(
                "You have already reviewed this trade",
                ReviewErrorCode.ALREADY_REVIEWED,
            )

        review = TradeReview(
            trade_id=trade.id,
            reviewer_user_id=reviewer_user_id,
            reviewee_user_id=trade.partner_of(reviewer_user_id),
            rating=rating,
            comment=comment,
            is_public=is_public,
        )
        try:
            async with atomic(self.db):
                self.db.add(review)
                await self.db.flush()
        except IntegrityError:
            # Lost a race against the same reviewer's concurrent request
            raise ReviewError(
                "You have already reviewed this trade",
                ReviewErrorCode.ALREADY_REVIEWED,
            )

        await self.db.refresh(review)

        logger.info(
            "trade_review_created",
            trade_id=trade.id,
            reviewer_user_id=reviewer_user_id,
            rating=rating,
        )
        return review

    async def get_trade_reviews(self, trade: Trade) -> list[TradeReview]:
        """Reviews for a trade, newest first."""
        query = (
            select(TradeReview)
            .where(TradeReview.trade_id == trade.id)
            .order_by(TradeReview.created_at.desc(), TradeReview.id.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def has_reviewed_trade(self, trade: Trade, user_id: str) -> bool:
        """Check if a user has already reviewed a trade."""
        query = select(TradeReview.id).where(
            TradeReview.trade_id == trade.id,
            TradeReview.reviewer_user_id == user_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none() is not None
