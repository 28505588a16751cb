"""
Trade room service.

Handles:
- Creating trades (with an optional seed card)
- Replacing a participant's offer while the trade is a draft
- Binding the responder
- Status transitions, each paired with one TradeHistory row
- Cancel / uncancel
- Expiring overdue trades (called by an external scheduler)

Every write that depends on the trade's current state is a guarded UPDATE
(``WHERE id = :id AND <expected state>``). If the guard matches no row the
trade changed since it was read, and TradeConflictError is raised before any
history row is added.
"""
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from traderoom.core.config import settings
from traderoom.core.exceptions import (
    TradeConflictError,
    TradeErrorCode,
    TradeNotFoundError,
    TradeTransitionError,
    TradeValidationError,
)
from traderoom.core.slugs import generate_room_slug
from traderoom.db.transaction import atomic
from traderoom.models.trade import Trade, TradeHistory, TradeItem, TradeStatus
from traderoom.services.trade_state import (
    ACTIVE_STATUSES,
    FINAL_STATUSES,
    SYSTEM_ACTOR_ID,
    TransitionActor,
    require_participant,
    validate_transition,
    validate_uncancel,
)

logger = get_logger()

UNCANCEL_REASON = "Cancellation withdrawn"
EXPIRY_REASON = "Deadline passed"

STATUS_FILTERS = {
    "active": ACTIVE_STATUSES,
    "completed": tuple(FINAL_STATUSES),
    "all": None,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_offer_items(items: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """
    Validate offer items and fill in the default quantity.

    Args:
        items: [{card_id, quantity?}]

    Returns:
        [{card_id, quantity}] in the given order

    Raises:
        TradeValidationError: If an item has no card_id or a non-positive quantity
    """
    normalized = []
    for item in items:
        card_id = item.get("card_id")
        if not card_id or not isinstance(card_id, str):
            raise TradeValidationError("Each item must have a card_id")

        quantity = item.get("quantity")
        if quantity is None:
            quantity = 1
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise TradeValidationError("Each item must have a positive quantity")

        normalized.append({"card_id": card_id, "quantity": quantity})
    return normalized


class TradeService:
    """Service for managing trade rooms."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_trade_by_room_slug(self, room_slug: str) -> Trade | None:
        """Get a trade by its public slug, with items loaded."""
        query = select(Trade).where(Trade.room_slug == room_slug)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_history(self, trade: Trade) -> list[TradeHistory]:
        """Status history of a trade, oldest first."""
        query = (
            select(TradeHistory)
            .where(TradeHistory.trade_id == trade.id)
            .order_by(TradeHistory.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_user_trades(
        self,
        user_id: str,
        status_filter: str = "all",
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """
        Trades a user participates in, most recently updated first.

        Args:
            user_id: Participant ID
            status_filter: "active" (draft/proposed/agreed),
                "completed" (completed/canceled/disputed/expired) or "all"
            limit: Max results (defaults to settings.my_trades_limit)

        Returns:
            One summary dict per trade
        """
        if status_filter not in STATUS_FILTERS:
            raise TradeValidationError(f"Invalid status filter: {status_filter}")

        condition = or_(
            Trade.initiator_user_id == user_id,
            Trade.responder_user_id == user_id,
        )
        statuses = STATUS_FILTERS[status_filter]
        if statuses:
            condition = and_(condition, Trade.status.in_(statuses))

        query = (
            select(Trade)
            .where(condition)
            .order_by(Trade.updated_at.desc(), Trade.id.desc())
            .limit(limit or settings.my_trades_limit)
        )
        result = await self.db.execute(query)
        trades = list(result.scalars().all())

        summaries = []
        for trade in trades:
            partner_id = trade.partner_of(user_id)
            summaries.append({
                "id": trade.id,
                "room_slug": trade.room_slug,
                "status": trade.status,
                "partner_user_id": partner_id,
                "is_initiator": trade.initiator_user_id == user_id,
                "my_item_count": len(trade.items_offered_by(user_id)),
                "their_item_count": len(trade.items_offered_by(partner_id)),
                "created_at": trade.created_at,
                "updated_at": trade.updated_at,
            })
        return summaries

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_trade(
        self,
        initiator_user_id: str,
        responder_user_id: str | None = None,
        proposed_expired_at: datetime | None = None,
        initial_card_id: str | None = None,
    ) -> Trade:
        """
        Create a new trade in draft status.

        The trade, its optional seed item and its creation history row are
        committed together.

        Args:
            initiator_user_id: User creating the trade
            responder_user_id: Optional counterparty, must differ from the initiator
            proposed_expired_at: Optional deadline for the proposed stage
            initial_card_id: Optional card to seed the initiator's offer with

        Returns:
            The created trade
        """
        if responder_user_id is not None and responder_user_id == initiator_user_id:
            raise TradeValidationError("Cannot trade with yourself")
        if initial_card_id is not None and not initial_card_id:
            raise TradeValidationError("initial_card_id must not be empty")

        async with atomic(self.db):
            trade = Trade(
                room_slug=await self._allocate_room_slug(),
                initiator_user_id=initiator_user_id,
                responder_user_id=responder_user_id,
                status=TradeStatus.DRAFT,
                proposed_expired_at=_as_utc(proposed_expired_at),
            )
            if initial_card_id:
                trade.items = [
                    TradeItem(
                        offered_by_user_id=initiator_user_id,
                        card_id=initial_card_id,
                        quantity=1,
                    )
                ]
            self.db.add(trade)
            await self.db.flush()

            self._record_history(trade, None, TradeStatus.DRAFT, initiator_user_id)
            await self.db.flush()

        await self.db.refresh(trade)

        logger.info(
            "trade_created",
            trade_id=trade.id,
            room_slug=trade.room_slug,
            initiator_user_id=initiator_user_id,
            responder_user_id=responder_user_id,
        )
        return trade

    async def _allocate_room_slug(self) -> str:
        """Generate a room slug not used by any existing trade."""
        for _ in range(settings.room_slug_max_attempts):
            slug = generate_room_slug()
            result = await self.db.execute(
                select(Trade.id).where(Trade.room_slug == slug)
            )
            if result.scalar_one_or_none() is None:
                return slug
            logger.warning("room_slug_collision", room_slug=slug)
        raise TradeConflictError("Could not allocate a unique room slug")

    # ------------------------------------------------------------------
    # Offers
    # ------------------------------------------------------------------

    async def update_offer(
        self,
        trade: Trade | None,
        user_id: str,
        items: Iterable[Mapping[str, Any]],
    ) -> list[TradeItem]:
        """
        Replace the caller's offer with a new list of items.

        Full replace, not a patch: the caller's existing items are removed and
        the new ones inserted. The other participant's items are untouched.
        An empty list clears the caller's offer. Not historized.

        Returns:
            The caller's items after the replace
        """
        trade = self._require_trade(trade)
        require_participant(trade, user_id)
        new_items = normalize_offer_items(items)

        if trade.status != TradeStatus.DRAFT:
            raise TradeTransitionError(
                "Cannot edit offer outside draft",
                TradeErrorCode.INVALID_TRANSITION,
            )

        async with atomic(self.db):
            # Locks the row and re-checks draft before touching items
            await self._guarded_update(trade, Trade.status == TradeStatus.DRAFT)
            # Re-read under the lock so rows committed since the trade was
            # loaded are part of the replace
            await self.db.refresh(trade, ["items"])

            kept = [i for i in trade.items if i.offered_by_user_id != user_id]
            trade.items = kept + [
                TradeItem(
                    offered_by_user_id=user_id,
                    card_id=item["card_id"],
                    quantity=item["quantity"],
                )
                for item in new_items
            ]
            await self.db.flush()

        await self.db.refresh(trade)

        logger.info(
            "trade_offer_updated",
            trade_id=trade.id,
            user_id=user_id,
            item_count=len(new_items),
        )
        return trade.items_offered_by(user_id)

    # ------------------------------------------------------------------
    # Responder
    # ------------------------------------------------------------------

    async def set_responder(self, trade: Trade | None, user_id: str) -> Trade:
        """
        Bind the counterparty of a trade. Allowed once; not a status change.
        """
        trade = self._require_trade(trade)
        self._check_responder_candidate(trade, user_id)

        async with atomic(self.db):
            await self._bind_responder(trade, user_id)

        await self.db.refresh(trade)
        return trade

    def _check_responder_candidate(self, trade: Trade, user_id: str) -> None:
        if trade.responder_user_id is not None:
            raise TradeTransitionError(
                "Responder already set",
                TradeErrorCode.UNAUTHORIZED,
            )
        if user_id == trade.initiator_user_id:
            raise TradeTransitionError(
                "Cannot be your own counterparty",
                TradeErrorCode.UNAUTHORIZED,
            )

    async def _bind_responder(self, trade: Trade, user_id: str) -> None:
        await self._guarded_update(
            trade,
            Trade.responder_user_id.is_(None),
            responder_user_id=user_id,
        )
        logger.info("trade_responder_set", trade_id=trade.id, responder_user_id=user_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition_trade(
        self,
        trade: Trade | None,
        to_status: TradeStatus | str,
        user_id: str,
        reason: str | None = None,
        agreed_expired_at: datetime | None = None,
    ) -> TradeStatus:
        """
        Move a trade to a new status on behalf of a participant.

        Args:
            trade: Trade to change
            to_status: Target status
            user_id: Caller
            reason: Free text stored on the history row (used for cancellation)
            agreed_expired_at: Deadline stamped when entering agreed

        Returns:
            The trade's status afterwards. For completion this stays agreed
            until both participants have confirmed.

        Raises:
            TradeTransitionError: UNAUTHORIZED or INVALID_TRANSITION
            TradeConflictError: The trade changed concurrently
        """
        trade = self._require_trade(trade)
        try:
            to_status = TradeStatus(to_status)
        except ValueError:
            require_participant(trade, user_id)
            raise TradeTransitionError(
                f"Unknown status '{to_status}'",
                TradeErrorCode.INVALID_TRANSITION,
            )

        actor = validate_transition(trade, to_status, user_id)

        if actor == TransitionActor.BOTH:
            return await self._confirm_completion(trade, user_id)

        bind_responder = to_status == TradeStatus.AGREED and trade.responder_user_id is None
        if bind_responder:
            self._check_responder_candidate(trade, user_id)

        values: dict[str, Any] = {}
        if to_status == TradeStatus.CANCELED:
            values["status_before_cancel"] = trade.status
        if to_status == TradeStatus.AGREED and agreed_expired_at is not None:
            values["agreed_expired_at"] = _as_utc(agreed_expired_at)

        async with atomic(self.db):
            if bind_responder:
                await self._bind_responder(trade, user_id)
            await self._apply_transition(trade, to_status, user_id, reason, **values)

        await self.db.refresh(trade)
        return trade.status

    async def _confirm_completion(self, trade: Trade, user_id: str) -> TradeStatus:
        """
        Record one participant's confirmation that the exchange happened.

        The trade completes when both participants have confirmed; the second
        confirmer is recorded as the actor of the transition.
        """
        if user_id == trade.initiator_user_id:
            confirmed_field = "initiator_confirmed_at"
        else:
            confirmed_field = "responder_confirmed_at"

        async with atomic(self.db):
            if getattr(trade, confirmed_field) is None:
                await self._guarded_update(
                    trade,
                    Trade.status == TradeStatus.AGREED,
                    **{confirmed_field: _utcnow()},
                )
                await self.db.refresh(
                    trade, ["initiator_confirmed_at", "responder_confirmed_at"]
                )
                logger.info(
                    "trade_completion_confirmed",
                    trade_id=trade.id,
                    user_id=user_id,
                )

            if trade.initiator_confirmed_at and trade.responder_confirmed_at:
                await self._apply_transition(trade, TradeStatus.COMPLETED, user_id)

        await self.db.refresh(trade)
        return trade.status

    async def uncancel_trade(self, trade: Trade | None, user_id: str) -> TradeStatus:
        """
        Restore a canceled trade to the status it had before cancellation.

        Returns:
            The restored status
        """
        trade = self._require_trade(trade)
        restored = validate_uncancel(trade, user_id)

        async with atomic(self.db):
            await self._apply_transition(
                trade,
                restored,
                user_id,
                UNCANCEL_REASON,
                status_before_cancel=None,
            )

        await self.db.refresh(trade)
        return restored

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def expire_trade(self, trade: Trade | None, now: datetime | None = None) -> bool:
        """
        Expire a trade whose deadline for its current stage has passed.

        Returns:
            True if the trade was expired, False if it is not overdue
        """
        trade = self._require_trade(trade)
        now = _as_utc(now) or _utcnow()

        if not self._is_overdue(trade, now):
            return False

        validate_transition(trade, TradeStatus.EXPIRED, SYSTEM_ACTOR_ID, system=True)

        async with atomic(self.db):
            await self._apply_transition(
                trade,
                TradeStatus.EXPIRED,
                SYSTEM_ACTOR_ID,
                EXPIRY_REASON,
            )

        await self.db.refresh(trade)
        return True

    async def expire_overdue_trades(self, now: datetime | None = None) -> int:
        """
        Expire every proposed or agreed trade past its deadline.

        Trades that change concurrently are skipped. Returns count of expired trades.
        """
        now = _as_utc(now) or _utcnow()
        query = select(Trade.id).where(
            or_(
                and_(
                    Trade.status == TradeStatus.PROPOSED,
                    Trade.proposed_expired_at <= now,
                ),
                and_(
                    Trade.status == TradeStatus.AGREED,
                    Trade.agreed_expired_at <= now,
                ),
            )
        )
        result = await self.db.execute(query)
        trade_ids = list(result.scalars().all())

        expired = 0
        for trade_id in trade_ids:
            # A rollback expires every loaded instance, so reload each trade
            trade = await self.db.get(Trade, trade_id, populate_existing=True)
            try:
                if await self.expire_trade(trade, now):
                    expired += 1
            except (TradeConflictError, TradeTransitionError) as e:
                logger.info("trade_expiry_skipped", trade_id=trade_id, reason=e.message)

        logger.info("trade_expiry_sweep_finished", candidates=len(trade_ids), expired=expired)
        return expired

    @staticmethod
    def _is_overdue(trade: Trade, now: datetime) -> bool:
        if trade.status == TradeStatus.PROPOSED:
            deadline = trade.proposed_expired_at
        elif trade.status == TradeStatus.AGREED:
            deadline = trade.agreed_expired_at
        else:
            return False
        return deadline is not None and _as_utc(deadline) <= now

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require_trade(trade: Trade | None) -> Trade:
        if trade is None:
            raise TradeNotFoundError("Trade not found")
        return trade

    async def _guarded_update(self, trade: Trade, *conditions, **values) -> None:
        """
        UPDATE the trade row only if it still matches the expected state.

        Raises:
            TradeConflictError: No row matched the guard
        """
        stmt = (
            update(Trade)
            .where(Trade.id == trade.id, *conditions)
            .values(updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount != 1:
            logger.warning(
                "trade_write_conflict",
                trade_id=trade.id,
                expected_status=trade.status.value,
            )
            raise TradeConflictError("Trade was modified by another request")

    async def _apply_transition(
        self,
        trade: Trade,
        to_status: TradeStatus,
        user_id: str,
        reason: str | None = None,
        **values: Any,
    ) -> None:
        """
        The only code path that writes Trade.status.

        Writes the status (guarded on the status the caller validated against)
        and appends exactly one history row.
        """
        from_status = trade.status
        await self._guarded_update(
            trade,
            Trade.status == from_status,
            status=to_status,
            **values,
        )
        self._record_history(trade, from_status, to_status, user_id, reason)
        await self.db.flush()

        logger.info(
            "trade_transitioned",
            trade_id=trade.id,
            from_status=from_status.value,
            to_status=to_status.value,
            changed_by_user_id=user_id,
        )

    def _record_history(
        self,
        trade: Trade,
        from_status: TradeStatus | None,
        to_status: TradeStatus,
        user_id: str,
        reason: str | None = None,
    ) -> TradeHistory:
        entry = TradeHistory(
            trade_id=trade.id,
            from_status=from_status,
            to_status=to_status,
            changed_by_user_id=user_id,
            reason=reason,
        )
        self.db.add(entry)
        return entry
