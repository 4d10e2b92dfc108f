"""Tests for pm_common.enums — string values are what the clearnode sends."""

from src.pm_common.enums import AuthState, ChannelStatus, OperationKind, RPCMethod, StateIntent


class TestAllEnumsAreStr:
    def test_auth_state_is_str(self) -> None:
        assert isinstance(AuthState.IDLE, str)
        assert AuthState.AWAITING_CHALLENGE == "AWAITING_CHALLENGE"

    def test_channel_status_is_lowercase(self) -> None:
        assert ChannelStatus.OPEN == "open"
        assert ChannelStatus.AWAITING_FUNDING == "awaiting_funding"

    def test_operation_kind(self) -> None:
        assert {k.value for k in OperationKind} == {"CREATE", "RESIZE", "CLOSE"}


class TestWireValues:
    def test_state_intent_matches_contract(self) -> None:
        assert [int(i) for i in StateIntent] == [0, 1, 2, 3]
        assert StateIntent(2) is StateIntent.RESIZE

    def test_balance_update_method(self) -> None:
        assert RPCMethod.BALANCE_UPDATE == "bu"

    def test_rpc_methods(self) -> None:
        assert RPCMethod("create_channel") is RPCMethod.CREATE_CHANNEL
        assert RPCMethod.ERROR.value == "error"
