"""Tests for the pure authentication transition table."""

from src.pm_common.enums import AuthState
from src.pm_session.domain.auth_machine import AuthEffect, auth_transition
from src.pm_session.protocol.messages import (
    AuthChallenge,
    AuthVerifyResult,
    ChannelsUpdate,
    ErrorMessage,
)


class TestChallenge:
    def test_challenge_moves_to_verify(self) -> None:
        step = auth_transition(AuthState.AWAITING_CHALLENGE, AuthChallenge(challenge_message="c"))
        assert step.next_state is AuthState.AWAITING_VERIFY
        assert step.effect is AuthEffect.SIGN_CHALLENGE
        assert step.challenge == "c"

    def test_challenge_out_of_order_ignored(self) -> None:
        assert auth_transition(AuthState.AWAITING_VERIFY, AuthChallenge(challenge_message="c")) is None
        assert auth_transition(AuthState.IDLE, AuthChallenge(challenge_message="c")) is None


class TestVerify:
    def test_success(self) -> None:
        step = auth_transition(AuthState.AWAITING_VERIFY, AuthVerifyResult(success=True))
        assert step.next_state is AuthState.AUTHENTICATED
        assert step.effect is AuthEffect.COMPLETE

    def test_rejected(self) -> None:
        step = auth_transition(AuthState.AWAITING_VERIFY, AuthVerifyResult(success=False))
        assert step.next_state is AuthState.FAILED
        assert step.effect is AuthEffect.REJECT

    def test_verify_before_challenge_ignored(self) -> None:
        assert auth_transition(AuthState.AWAITING_CHALLENGE, AuthVerifyResult(success=True)) is None


class TestError:
    def test_error_in_flight_fails_with_reason(self) -> None:
        step = auth_transition(AuthState.AWAITING_CHALLENGE, ErrorMessage(error="unknown wallet"))
        assert step.next_state is AuthState.FAILED
        assert step.reason == "unknown wallet"

    def test_error_when_idle_ignored(self) -> None:
        assert auth_transition(AuthState.IDLE, ErrorMessage(error="x")) is None

    def test_unrelated_message_ignored(self) -> None:
        assert auth_transition(AuthState.AWAITING_VERIFY, ChannelsUpdate()) is None
