"""Tests for the pure channel response handlers and the status table."""

from dataclasses import fields
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from src.pm_channel.domain.models import PendingOperation
from src.pm_channel.domain.transitions import (
    ALLOWED_TRANSITIONS,
    RESPONSE_HANDLERS,
    ChannelView,
    Outcome,
    SubmitClose,
    SubmitCreate,
    SubmitResize,
    Transition,
    can_transition,
    on_close_response,
    on_create_response,
    on_resize_response,
    pending_key,
)
from src.pm_common.enums import ChannelStatus, OperationKind
from src.pm_session.protocol.messages import (
    CloseChannelResponse,
    CreateChannelResponse,
    ResizeChannelResponse,
)
from tests.fakes import ADJUDICATOR, CHANNEL_ID, CLEARNODE, wire_state

USER = "0x19E7E376E7C213B7E7e7e46cc70A5dD086DAff2A"


def _pending(kind: OperationKind, abandoned: bool = False) -> PendingOperation:
    return PendingOperation(
        kind=kind,
        channel_id=None if kind is OperationKind.CREATE else CHANNEL_ID,
        expected_amount=0,
        requested_at=datetime.now(UTC),
        response=MagicMock(),
        abandoned=abandoned,
    )


def _create(participants: list[str], intent: int = 1, allocations=None) -> CreateChannelResponse:
    return CreateChannelResponse(
        channel_id=CHANNEL_ID,
        channel={"participants": participants, "adjudicator": ADJUDICATOR, "challenge": 3600, "nonce": 1},
        state=wire_state(intent, allocations if allocations is not None else [(USER, 0), (CLEARNODE, 0)]),
        server_signature="0xsrv",
    )


class TestCreateHandler:
    def test_applies_with_submit_effect(self) -> None:
        view = ChannelView(user=USER.lower(), channel=None, pending=_pending(OperationKind.CREATE))
        t = on_create_response(view, _create([USER, CLEARNODE]))
        assert t.outcome is Outcome.APPLY
        assert isinstance(t.effect, SubmitCreate)
        assert t.effect.channel_id == CHANNEL_ID
        assert t.effect.server_signature == "0xsrv"

    def test_handlers_leave_status_moves_to_the_coordinator(self) -> None:
        assert [f.name for f in fields(Transition)] == ["outcome", "effect", "reason"]

    def test_no_pending_is_ignored(self) -> None:
        t = on_create_response(ChannelView(USER, None, None), _create([USER, CLEARNODE]))
        assert t.outcome is Outcome.IGNORE

    def test_abandoned_pending_is_ignored(self) -> None:
        view = ChannelView(USER, None, _pending(OperationKind.CREATE, abandoned=True))
        assert on_create_response(view, _create([USER, CLEARNODE])).outcome is Outcome.IGNORE

    def test_user_must_be_participant(self) -> None:
        view = ChannelView(USER, None, _pending(OperationKind.CREATE))
        t = on_create_response(view, _create([CLEARNODE, ADJUDICATOR]))
        assert t.outcome is Outcome.REJECT
        assert "participant" in t.reason

    def test_initial_state_needs_allocations(self) -> None:
        view = ChannelView(USER, None, _pending(OperationKind.CREATE))
        assert on_create_response(view, _create([USER, CLEARNODE], allocations=[])).outcome is Outcome.REJECT

    def test_initial_state_intent(self) -> None:
        view = ChannelView(USER, None, _pending(OperationKind.CREATE))
        assert on_create_response(view, _create([USER, CLEARNODE], intent=2)).outcome is Outcome.REJECT

    def test_unknown_intent_is_rejected(self) -> None:
        view = ChannelView(USER, None, _pending(OperationKind.CREATE))
        t = on_create_response(view, _create([USER, CLEARNODE], intent=77))
        assert t.outcome is Outcome.REJECT
        assert "77" in t.reason


class TestResizeAndCloseHandlers:
    def _resize(self, intent: int = 2) -> ResizeChannelResponse:
        return ResizeChannelResponse(
            channel_id=CHANNEL_ID, state=wire_state(intent, [(USER, 20)], version=1), server_signature="0xsrv"
        )

    def _close(self, intent: int = 3) -> CloseChannelResponse:
        return CloseChannelResponse(
            channel_id=CHANNEL_ID, state=wire_state(intent, [(USER, 20)], version=2), server_signature="0xsrv"
        )

    def test_resize_applies(self) -> None:
        t = on_resize_response(ChannelView(USER, None, _pending(OperationKind.RESIZE)), self._resize())
        assert t.outcome is Outcome.APPLY
        assert isinstance(t.effect, SubmitResize)
        assert t.effect.signed_state.state.total_for("0x1c7d4b196cb0c7b01d743fbc6116a902379c7238") == 20

    def test_resize_wrong_intent(self) -> None:
        t = on_resize_response(ChannelView(USER, None, _pending(OperationKind.RESIZE)), self._resize(intent=3))
        assert t.outcome is Outcome.REJECT

    def test_resize_without_pending_resize(self) -> None:
        t = on_resize_response(ChannelView(USER, None, _pending(OperationKind.CLOSE)), self._resize())
        assert t.outcome is Outcome.IGNORE

    def test_close_applies(self) -> None:
        t = on_close_response(ChannelView(USER, None, _pending(OperationKind.CLOSE)), self._close())
        assert t.outcome is Outcome.APPLY
        assert isinstance(t.effect, SubmitClose)

    def test_close_requires_final_state(self) -> None:
        t = on_close_response(ChannelView(USER, None, _pending(OperationKind.CLOSE)), self._close(intent=0))
        assert t.outcome is Outcome.REJECT

    def test_unknown_intent_rejects_resize_and_close(self) -> None:
        resize = on_resize_response(ChannelView(USER, None, _pending(OperationKind.RESIZE)), self._resize(intent=77))
        close = on_close_response(ChannelView(USER, None, _pending(OperationKind.CLOSE)), self._close(intent=77))
        assert resize.outcome is Outcome.REJECT
        assert close.outcome is Outcome.REJECT


class TestTables:
    def test_dispatch_table_covers_every_response(self) -> None:
        assert RESPONSE_HANDLERS[CreateChannelResponse][0] is OperationKind.CREATE
        assert RESPONSE_HANDLERS[ResizeChannelResponse][0] is OperationKind.RESIZE
        assert RESPONSE_HANDLERS[CloseChannelResponse][0] is OperationKind.CLOSE

    def test_pending_key(self) -> None:
        assert pending_key(OperationKind.CREATE, CHANNEL_ID) == (None, OperationKind.CREATE)
        assert pending_key(OperationKind.RESIZE, CHANNEL_ID) == (CHANNEL_ID, OperationKind.RESIZE)

    def test_creating_never_jumps_to_open(self) -> None:
        assert not can_transition(ChannelStatus.CREATING, ChannelStatus.OPEN)

    def test_terminal_states_are_final(self) -> None:
        assert ALLOWED_TRANSITIONS[ChannelStatus.CLOSED] == frozenset()
        assert ALLOWED_TRANSITIONS[ChannelStatus.FAILED] == frozenset()

    @pytest.mark.parametrize(
        "status",
        [s for s in ChannelStatus if s not in (ChannelStatus.CLOSED, ChannelStatus.FAILED)],
    )
    def test_failed_reachable_from_non_terminal(self, status: ChannelStatus) -> None:
        assert can_transition(status, ChannelStatus.FAILED)

    def test_funding_loop(self) -> None:
        assert can_transition(ChannelStatus.AWAITING_FUNDING, ChannelStatus.RESIZING)
        assert can_transition(ChannelStatus.RESIZING, ChannelStatus.AWAITING_FUNDING)
