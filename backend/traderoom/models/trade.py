"""
Trade room models for two-party card trades.

A trade is negotiated in a room identified by a public slug:
- Each participant contributes an offer (a set of TradeItem rows)
- Status moves through an explicit state machine
- Every status change is appended to TradeHistory
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from traderoom.db.base import Base

USER_ID_LENGTH = 64
CARD_ID_LENGTH = 64


class TradeStatus(str, Enum):
    """Status of a trade."""
    DRAFT = "draft"              # Offers still editable
    PROPOSED = "proposed"        # Offer finalized, awaiting agreement
    AGREED = "agreed"            # Both sides accepted the offers
    COMPLETED = "completed"      # Exchange confirmed by both participants
    CANCELED = "canceled"        # Parked; restorable via uncancel
    DISPUTED = "disputed"        # Escalated by a participant
    EXPIRED = "expired"          # Deadline passed, set by the expiry sweep


def _status_enum(name: str) -> SQLEnum:
    return SQLEnum(
        TradeStatus,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda statuses: [s.value for s in statuses],
    )


class Trade(Base):
    """
    A trade negotiation between an initiator and (eventually) a responder.

    Status must only be changed through TradeService so that every change is
    paired with a TradeHistory row.
    """

    __tablename__ = "trades"
    __table_args__ = (
        CheckConstraint(
            "responder_user_id IS NULL OR responder_user_id <> initiator_user_id",
            name="ck_trades_responder_not_initiator",
        ),
    )

    room_slug: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
    )

    # Participants (opaque ids issued by the auth provider)
    initiator_user_id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        nullable=False,
        index=True,
    )
    responder_user_id: Mapped[Optional[str]] = mapped_column(
        String(USER_ID_LENGTH),
        nullable=True,
        index=True,
    )

    # Status
    status: Mapped[TradeStatus] = mapped_column(
        _status_enum("trade_status"),
        default=TradeStatus.DRAFT,
        nullable=False,
        index=True,
    )
    status_before_cancel: Mapped[Optional[TradeStatus]] = mapped_column(
        _status_enum("trade_status_before_cancel"),
        nullable=True,
    )

    # Deadlines, interpreted by the expiry sweep
    proposed_expired_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    agreed_expired_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Completion tracking
    initiator_confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    responder_confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    items: Mapped[list["TradeItem"]] = relationship(
        "TradeItem",
        back_populates="trade",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TradeItem.id",
    )

    def __repr__(self) -> str:
        return f"<Trade id={self.id} slug={self.room_slug} status={self.status}>"

    @property
    def participant_ids(self) -> tuple[str, ...]:
        """Ids of the current participants."""
        if self.responder_user_id:
            return (self.initiator_user_id, self.responder_user_id)
        return (self.initiator_user_id,)

    def is_participant(self, user_id: str) -> bool:
        """Check if a user is the initiator or the bound responder."""
        return user_id in self.participant_ids

    def partner_of(self, user_id: str) -> Optional[str]:
        """The other participant's id, from the point of view of user_id."""
        if user_id == self.initiator_user_id:
            return self.responder_user_id
        return self.initiator_user_id

    def items_offered_by(self, user_id: Optional[str]) -> list["TradeItem"]:
        """Items in one participant's offer."""
        if user_id is None:
            return []
        return [i for i in self.items if i.offered_by_user_id == user_id]


class TradeItem(Base):
    """
    A card offered by one participant.

    The card id is an opaque reference into the external catalog.
    """

    __tablename__ = "trade_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_trade_items_quantity_positive"),
    )

    trade_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trades.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    offered_by_user_id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        nullable=False,
    )
    card_id: Mapped[str] = mapped_column(
        String(CARD_ID_LENGTH),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )

    trade: Mapped["Trade"] = relationship(
        "Trade",
        back_populates="items",
    )

    def __repr__(self) -> str:
        return f"<TradeItem trade={self.trade_id} card={self.card_id} qty={self.quantity}>"


class TradeHistory(Base):
    """
    One status change of a trade. Append-only.

    from_status is NULL only for the creation row.
    """

    __tablename__ = "trade_history"

    trade_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("trades.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_status: Mapped[Optional[TradeStatus]] = mapped_column(
        _status_enum("trade_history_from_status"),
        nullable=True,
    )
    to_status: Mapped[TradeStatus] = mapped_column(
        _status_enum("trade_history_to_status"),
        nullable=False,
    )
    changed_by_user_id: Mapped[str] = mapped_column(
        String(USER_ID_LENGTH),
        nullable=False,
    )
    reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<TradeHistory trade={self.trade_id} "
            f"{self.from_status}->{self.to_status} by={self.changed_by_user_id}>"
        )
