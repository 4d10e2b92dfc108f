"""Channel state machine: allowed status moves and response handlers.

Each response handler is a pure function of (ChannelView, message) returning
a Transition. The coordinator applies the status change and carries out the
effects (ledger submissions) only when the pending operation is still the
current one.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.pm_channel.domain.models import (
    Channel,
    ChannelDefinition,
    PendingOperation,
    SignedState,
    StateSnapshot,
)
from src.pm_common.enums import ChannelStatus, OperationKind, StateIntent
from src.pm_session.protocol.messages import (
    CloseChannelResponse,
    CreateChannelResponse,
    ResizeChannelResponse,
)

ALLOWED_TRANSITIONS: dict[ChannelStatus, frozenset[ChannelStatus]] = {
    # NONE -> OPEN only when adopting a channel the ledger already holds open
    ChannelStatus.NONE: frozenset({ChannelStatus.CREATING, ChannelStatus.OPEN, ChannelStatus.FAILED}),
    ChannelStatus.CREATING: frozenset({ChannelStatus.AWAITING_FUNDING, ChannelStatus.FAILED}),
    ChannelStatus.AWAITING_FUNDING: frozenset(
        {ChannelStatus.RESIZING, ChannelStatus.CLOSING, ChannelStatus.FAILED}
    ),
    ChannelStatus.RESIZING: frozenset(
        {ChannelStatus.AWAITING_FUNDING, ChannelStatus.OPEN, ChannelStatus.FAILED}
    ),
    ChannelStatus.OPEN: frozenset({ChannelStatus.RESIZING, ChannelStatus.CLOSING, ChannelStatus.FAILED}),
    ChannelStatus.CLOSING: frozenset(
        {ChannelStatus.CLOSED, ChannelStatus.OPEN, ChannelStatus.AWAITING_FUNDING, ChannelStatus.FAILED}
    ),
    ChannelStatus.CLOSED: frozenset(),
    ChannelStatus.FAILED: frozenset(),
}

TERMINAL_STATUSES = frozenset({ChannelStatus.CLOSED, ChannelStatus.FAILED})


def can_transition(current: ChannelStatus, target: ChannelStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class Outcome(str, Enum):
    APPLY = "APPLY"      # response matches the pending operation
    REJECT = "REJECT"    # matches, but its content is unacceptable
    IGNORE = "IGNORE"    # no current pending operation: stale or duplicate


@dataclass(frozen=True)
class SubmitCreate:
    channel_id: str
    definition: ChannelDefinition
    state: StateSnapshot
    server_signature: str


@dataclass(frozen=True)
class SubmitResize:
    signed_state: SignedState


@dataclass(frozen=True)
class SubmitClose:
    signed_state: SignedState


Effect = SubmitCreate | SubmitResize | SubmitClose


@dataclass(frozen=True)
class Transition:
    outcome: Outcome
    effect: Effect | None = None
    reason: str | None = None


@dataclass(frozen=True)
class ChannelView:
    user: str
    channel: Channel | None
    pending: PendingOperation | None


def _ignore(reason: str) -> Transition:
    return Transition(Outcome.IGNORE, reason=reason)


def _reject(reason: str) -> Transition:
    return Transition(Outcome.REJECT, reason=reason)


def _is_current(view: ChannelView, kind: OperationKind) -> bool:
    return view.pending is not None and view.pending.kind is kind and not view.pending.abandoned


def _unknown_intent(value: int) -> Transition | None:
    try:
        StateIntent(value)
    except ValueError:
        return _reject(f"unknown state intent {value}")
    return None


def on_create_response(view: ChannelView, msg: CreateChannelResponse) -> Transition:
    if not _is_current(view, OperationKind.CREATE):
        return _ignore("no pending create")
    participants = [p.lower() for p in msg.channel.participants]
    if view.user.lower() not in participants:
        return _reject(f"user {view.user} is not a participant of {msg.channel_id}")
    if (rejected := _unknown_intent(msg.state.intent)) is not None:
        return rejected
    state = msg.state.to_domain()
    if state.intent is not StateIntent.INITIALIZE:
        return _reject(f"initial state has intent {state.intent.name}")
    if not state.allocations:
        return _reject("initial state has no allocations")
    return Transition(
        Outcome.APPLY,
        effect=SubmitCreate(msg.channel_id, msg.channel.to_domain(), state, msg.server_signature),
    )


def on_resize_response(view: ChannelView, msg: ResizeChannelResponse) -> Transition:
    if not _is_current(view, OperationKind.RESIZE):
        return _ignore("no pending resize")
    if (rejected := _unknown_intent(msg.state.intent)) is not None:
        return rejected
    signed = msg.signed_state()
    if signed.state.intent is not StateIntent.RESIZE:
        return _reject(f"resize state has intent {signed.state.intent.name}")
    return Transition(Outcome.APPLY, effect=SubmitResize(signed))


def on_close_response(view: ChannelView, msg: CloseChannelResponse) -> Transition:
    if not _is_current(view, OperationKind.CLOSE):
        return _ignore("no pending close")
    if (rejected := _unknown_intent(msg.state.intent)) is not None:
        return rejected
    signed = msg.signed_state()
    if signed.state.intent is not StateIntent.FINALIZE:
        return _reject(f"final state has intent {signed.state.intent.name}")
    return Transition(Outcome.APPLY, effect=SubmitClose(signed))


Handler = Callable[[ChannelView, Any], Transition]

RESPONSE_HANDLERS: dict[type, tuple[OperationKind, Handler]] = {
    CreateChannelResponse: (OperationKind.CREATE, on_create_response),
    ResizeChannelResponse: (OperationKind.RESIZE, on_resize_response),
    CloseChannelResponse: (OperationKind.CLOSE, on_close_response),
}


def pending_key(kind: OperationKind, channel_id: str | None) -> tuple[str | None, OperationKind]:
    """Creates are keyed without a channel id: the id is unknown until the response."""
    if kind is OperationKind.CREATE:
        return (None, kind)
    return (channel_id, kind)
