"""
Tests for the trade state machine.

These run against transient Trade instances; nothing touches the database.
"""
import pytest

from traderoom.core.exceptions import TradeErrorCode, TradeTransitionError
from traderoom.models.trade import Trade, TradeStatus
from traderoom.services.trade_state import (
    FINAL_STATUSES,
    SYSTEM_ACTOR_ID,
    TRANSITIONS,
    TransitionActor,
    can_transition,
    get_transition_actor,
    may_bind_as_responder,
    validate_transition,
    validate_uncancel,
)

ALICE = "user-alice"
BOB = "user-bob"
MALLORY = "user-mallory"


def make_trade(status: TradeStatus, responder: str | None = BOB, **fields) -> Trade:
    return Trade(
        room_slug="testslug01",
        initiator_user_id=ALICE,
        responder_user_id=responder,
        status=status,
        **fields,
    )


class TestTransitionTable:
    """The table is the single source of legal edges."""

    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(TradeStatus)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TradeStatus.DRAFT, TradeStatus.PROPOSED),
            (TradeStatus.DRAFT, TradeStatus.CANCELED),
            (TradeStatus.PROPOSED, TradeStatus.AGREED),
            (TradeStatus.PROPOSED, TradeStatus.CANCELED),
            (TradeStatus.PROPOSED, TradeStatus.EXPIRED),
            (TradeStatus.AGREED, TradeStatus.COMPLETED),
            (TradeStatus.AGREED, TradeStatus.CANCELED),
            (TradeStatus.AGREED, TradeStatus.DISPUTED),
            (TradeStatus.AGREED, TradeStatus.EXPIRED),
            (TradeStatus.COMPLETED, TradeStatus.DISPUTED),
        ],
    )
    def test_legal_edges(self, from_status, to_status):
        assert can_transition(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TradeStatus.DRAFT, TradeStatus.AGREED),
            (TradeStatus.DRAFT, TradeStatus.COMPLETED),
            (TradeStatus.PROPOSED, TradeStatus.DRAFT),
            (TradeStatus.AGREED, TradeStatus.PROPOSED),
            (TradeStatus.COMPLETED, TradeStatus.CANCELED),
            (TradeStatus.CANCELED, TradeStatus.DRAFT),
            (TradeStatus.EXPIRED, TradeStatus.PROPOSED),
        ],
    )
    def test_illegal_edges(self, from_status, to_status):
        assert not can_transition(from_status, to_status)
        assert get_transition_actor(from_status, to_status) is None

    def test_dead_ends_have_no_outgoing_edges(self):
        for status in (TradeStatus.CANCELED, TradeStatus.DISPUTED, TradeStatus.EXPIRED):
            assert TRANSITIONS[status] == {}

    def test_actor_rules(self):
        assert get_transition_actor(TradeStatus.AGREED, TradeStatus.COMPLETED) == TransitionActor.BOTH
        assert get_transition_actor(TradeStatus.PROPOSED, TradeStatus.EXPIRED) == TransitionActor.SYSTEM
        assert get_transition_actor(TradeStatus.DRAFT, TradeStatus.PROPOSED) == TransitionActor.PARTICIPANT

    def test_final_statuses(self):
        assert FINAL_STATUSES == {
            TradeStatus.COMPLETED,
            TradeStatus.CANCELED,
            TradeStatus.DISPUTED,
            TradeStatus.EXPIRED,
        }
        assert TradeStatus.AGREED not in FINAL_STATUSES


class TestValidateTransition:
    def test_participant_may_propose(self):
        trade = make_trade(TradeStatus.DRAFT)
        assert validate_transition(trade, TradeStatus.PROPOSED, ALICE) == TransitionActor.PARTICIPANT
        assert validate_transition(trade, TradeStatus.PROPOSED, BOB) == TransitionActor.PARTICIPANT

    def test_outsider_is_unauthorized_even_for_legal_edge(self):
        trade = make_trade(TradeStatus.DRAFT)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.PROPOSED, MALLORY)
        assert exc_info.value.code == TradeErrorCode.UNAUTHORIZED

    def test_outsider_is_unauthorized_before_legality(self):
        trade = make_trade(TradeStatus.EXPIRED)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.DRAFT, MALLORY)
        assert exc_info.value.code == TradeErrorCode.UNAUTHORIZED

    def test_illegal_edge_is_invalid_transition(self):
        trade = make_trade(TradeStatus.DRAFT)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.COMPLETED, ALICE)
        assert exc_info.value.code == TradeErrorCode.INVALID_TRANSITION
        assert exc_info.value.message == "Cannot transition from 'draft' to 'completed'"

    def test_prospective_responder_may_agree(self):
        trade = make_trade(TradeStatus.PROPOSED, responder=None)
        assert may_bind_as_responder(trade, MALLORY, TradeStatus.AGREED)
        assert validate_transition(trade, TradeStatus.AGREED, MALLORY) == TransitionActor.PARTICIPANT

    def test_prospective_responder_only_for_agree(self):
        trade = make_trade(TradeStatus.PROPOSED, responder=None)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.CANCELED, MALLORY)
        assert exc_info.value.code == TradeErrorCode.UNAUTHORIZED

    @pytest.mark.parametrize("status", [TradeStatus.DRAFT, TradeStatus.CANCELED])
    def test_outsider_cannot_agree_outside_proposed(self, status):
        trade = make_trade(status, responder=None)
        assert not may_bind_as_responder(trade, MALLORY, TradeStatus.AGREED)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.AGREED, MALLORY)
        assert exc_info.value.code == TradeErrorCode.UNAUTHORIZED

    def test_no_prospective_responder_once_bound(self):
        trade = make_trade(TradeStatus.PROPOSED)
        assert not may_bind_as_responder(trade, MALLORY, TradeStatus.AGREED)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.AGREED, MALLORY)
        assert exc_info.value.code == TradeErrorCode.UNAUTHORIZED

    def test_participants_cannot_expire(self):
        trade = make_trade(TradeStatus.PROPOSED)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.EXPIRED, ALICE)
        assert exc_info.value.code == TradeErrorCode.INVALID_TRANSITION

    def test_system_may_expire(self):
        trade = make_trade(TradeStatus.AGREED)
        actor = validate_transition(trade, TradeStatus.EXPIRED, SYSTEM_ACTOR_ID, system=True)
        assert actor == TransitionActor.SYSTEM

    def test_system_cannot_cancel(self):
        trade = make_trade(TradeStatus.AGREED)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_transition(trade, TradeStatus.CANCELED, SYSTEM_ACTOR_ID, system=True)
        assert exc_info.value.code == TradeErrorCode.INVALID_TRANSITION


class TestValidateUncancel:
    def test_returns_previous_status(self):
        trade = make_trade(TradeStatus.CANCELED, status_before_cancel=TradeStatus.AGREED)
        assert validate_uncancel(trade, BOB) == TradeStatus.AGREED

    def test_outsider_is_unauthorized(self):
        trade = make_trade(TradeStatus.DRAFT)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_uncancel(trade, MALLORY)
        assert exc_info.value.code == TradeErrorCode.UNAUTHORIZED

    def test_not_canceled(self):
        trade = make_trade(TradeStatus.PROPOSED)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_uncancel(trade, ALICE)
        assert exc_info.value.code == TradeErrorCode.INVALID_TRANSITION
        assert exc_info.value.message == "Trade is not canceled"

    def test_unknown_previous_status(self):
        trade = make_trade(TradeStatus.CANCELED, status_before_cancel=None)
        with pytest.raises(TradeTransitionError) as exc_info:
            validate_uncancel(trade, ALICE)
        assert exc_info.value.code == TradeErrorCode.INVALID_TRANSITION
