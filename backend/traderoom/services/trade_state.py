"""
Trade state machine.

The full set of legal status changes lives in TRANSITIONS; nothing else in
the codebase decides whether an edge exists.

    draft ──> proposed ──> agreed ──> completed ──> disputed
      │          │  │         │  │
      │          │  └> expired│  ├──> disputed
      │          │            │  └──> expired
      └──────────┴────────────┴──> canceled ──(uncancel)──> previous status
"""
from enum import Enum
from typing import Optional

from traderoom.core.exceptions import TradeErrorCode, TradeTransitionError
from traderoom.models.trade import Trade, TradeStatus

# changed_by_user_id recorded for transitions raised by the expiry sweep
SYSTEM_ACTOR_ID = "system"


class TransitionActor(str, Enum):
    """Who may trigger a transition."""
    PARTICIPANT = "participant"  # either participant, alone
    BOTH = "both"                # each participant must confirm
    SYSTEM = "system"            # only the scheduled sweep


TRANSITIONS: dict[TradeStatus, dict[TradeStatus, TransitionActor]] = {
    TradeStatus.DRAFT: {
        TradeStatus.PROPOSED: TransitionActor.PARTICIPANT,
        TradeStatus.CANCELED: TransitionActor.PARTICIPANT,
    },
    TradeStatus.PROPOSED: {
        TradeStatus.AGREED: TransitionActor.PARTICIPANT,
        TradeStatus.CANCELED: TransitionActor.PARTICIPANT,
        TradeStatus.EXPIRED: TransitionActor.SYSTEM,
    },
    TradeStatus.AGREED: {
        TradeStatus.COMPLETED: TransitionActor.BOTH,
        TradeStatus.CANCELED: TransitionActor.PARTICIPANT,
        TradeStatus.DISPUTED: TransitionActor.PARTICIPANT,
        TradeStatus.EXPIRED: TransitionActor.SYSTEM,
    },
    TradeStatus.COMPLETED: {
        TradeStatus.DISPUTED: TransitionActor.PARTICIPANT,
    },
    # Leaving canceled is only possible through uncancel, which replays
    # status_before_cancel instead of naming a target.
    TradeStatus.CANCELED: {},
    TradeStatus.DISPUTED: {},
    TradeStatus.EXPIRED: {},
}

FINAL_STATUSES = frozenset({
    TradeStatus.COMPLETED,
    TradeStatus.CANCELED,
    TradeStatus.DISPUTED,
    TradeStatus.EXPIRED,
})

ACTIVE_STATUSES = (TradeStatus.DRAFT, TradeStatus.PROPOSED, TradeStatus.AGREED)


def can_transition(from_status: TradeStatus, to_status: TradeStatus) -> bool:
    """Check if an edge exists in the transition table."""
    return to_status in TRANSITIONS.get(from_status, {})


def get_transition_actor(
    from_status: TradeStatus,
    to_status: TradeStatus,
) -> Optional[TransitionActor]:
    """Actor rule for an edge, or None if the edge does not exist."""
    return TRANSITIONS.get(from_status, {}).get(to_status)


def can_participate(trade: Trade, user_id: str) -> bool:
    """Check if a user is a current participant of a trade."""
    return trade.is_participant(user_id)


def may_bind_as_responder(trade: Trade, user_id: str, to_status: TradeStatus) -> bool:
    """
    A non-participant asking to agree to a proposed trade with no responder
    yet is a prospective responder, not an outsider.
    """
    return (
        to_status == TradeStatus.AGREED
        and trade.status == TradeStatus.PROPOSED
        and trade.responder_user_id is None
        and user_id != trade.initiator_user_id
    )


def require_participant(trade: Trade, user_id: str) -> None:
    """Raise UNAUTHORIZED unless user_id is a current participant."""
    if not can_participate(trade, user_id):
        raise TradeTransitionError(
            "You are not a participant in this trade",
            TradeErrorCode.UNAUTHORIZED,
        )


def validate_transition(
    trade: Trade,
    to_status: TradeStatus,
    user_id: str,
    *,
    system: bool = False,
) -> TransitionActor:
    """
    Validate a requested status change.

    Authorization is checked before legality, so an outsider never learns
    whether the edge exists.

    Returns:
        The actor rule of the edge

    Raises:
        TradeTransitionError: UNAUTHORIZED or INVALID_TRANSITION
    """
    if not system and not (
        can_participate(trade, user_id) or may_bind_as_responder(trade, user_id, to_status)
    ):
        raise TradeTransitionError(
            "You are not a participant in this trade",
            TradeErrorCode.UNAUTHORIZED,
        )

    if not can_transition(trade.status, to_status):
        raise TradeTransitionError(
            f"Cannot transition from '{trade.status.value}' to '{to_status.value}'",
            TradeErrorCode.INVALID_TRANSITION,
        )

    actor = get_transition_actor(trade.status, to_status)
    if system and actor != TransitionActor.SYSTEM:
        raise TradeTransitionError(
            f"Transition to '{to_status.value}' must be requested by a participant",
            TradeErrorCode.INVALID_TRANSITION,
        )
    if not system and actor == TransitionActor.SYSTEM:
        raise TradeTransitionError(
            f"Transition to '{to_status.value}' is applied automatically",
            TradeErrorCode.INVALID_TRANSITION,
        )

    return actor


def validate_uncancel(trade: Trade, user_id: str) -> TradeStatus:
    """
    Validate restoring a canceled trade.

    Returns:
        The status to restore
    """
    require_participant(trade, user_id)

    if trade.status != TradeStatus.CANCELED:
        raise TradeTransitionError(
            "Trade is not canceled",
            TradeErrorCode.INVALID_TRANSITION,
        )

    if trade.status_before_cancel is None:
        raise TradeTransitionError(
            "Previous status is unknown",
            TradeErrorCode.INVALID_TRANSITION,
        )

    return trade.status_before_cancel
