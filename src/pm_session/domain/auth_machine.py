"""Authentication state machine as a dispatch table of pure handlers.

Each handler maps (current AuthState, inbound message) to the next state and
the effect the session must carry out. Messages that do not apply to the
current state yield None and leave the session untouched.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.pm_common.enums import AuthState
from src.pm_session.protocol.messages import AuthChallenge, AuthVerifyResult, ErrorMessage

_IN_FLIGHT = (AuthState.AWAITING_CHALLENGE, AuthState.AWAITING_VERIFY)


class AuthEffect(str, Enum):
    SIGN_CHALLENGE = "SIGN_CHALLENGE"
    COMPLETE = "COMPLETE"
    REJECT = "REJECT"


@dataclass(frozen=True)
class AuthStep:
    next_state: AuthState
    effect: AuthEffect
    challenge: str | None = None
    reason: str | None = None


def _on_challenge(state: AuthState, msg: AuthChallenge) -> AuthStep | None:
    if state is not AuthState.AWAITING_CHALLENGE:
        return None
    return AuthStep(AuthState.AWAITING_VERIFY, AuthEffect.SIGN_CHALLENGE, challenge=msg.challenge_message)


def _on_verify(state: AuthState, msg: AuthVerifyResult) -> AuthStep | None:
    if state is not AuthState.AWAITING_VERIFY:
        return None
    if msg.success:
        return AuthStep(AuthState.AUTHENTICATED, AuthEffect.COMPLETE)
    return AuthStep(AuthState.FAILED, AuthEffect.REJECT, reason="verification rejected")


def _on_error(state: AuthState, msg: ErrorMessage) -> AuthStep | None:
    if state not in _IN_FLIGHT:
        return None
    return AuthStep(AuthState.FAILED, AuthEffect.REJECT, reason=msg.error)


_HANDLERS: dict[type, Callable[[AuthState, Any], AuthStep | None]] = {
    AuthChallenge: _on_challenge,
    AuthVerifyResult: _on_verify,
    ErrorMessage: _on_error,
}


def auth_transition(state: AuthState, message: object) -> AuthStep | None:
    handler = _HANDLERS.get(type(message))
    if handler is None:
        return None
    return handler(state, message)
