"""
Post-trade reviews.

Each participant may leave one review of the other participant once a
trade is completed.
"""
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from traderoom.db.base import Base
from traderoom.models.trade import USER_ID_LENGTH


class TradeReview(Base):
    """
    Individual review from one trade participant about the other.
    """

    __tablename__ = "trade_reviews"
    __table_args__ = (
        UniqueConstraint("trade_id", "reviewer_user_id", name="uq_trade_reviews_trade_reviewer"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_trade_reviews_rating_range"),
    )

    trade_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trades.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_user_id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        nullable=False,
    )
    reviewee_user_id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        nullable=False,
        index=True,
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-5
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<TradeReview trade={self.trade_id} {self.reviewer_user_id}->{self.reviewee_user_id} rating={self.rating}>"
