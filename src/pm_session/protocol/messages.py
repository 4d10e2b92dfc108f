"""Clearnode protocol message set as closed tagged variants.

One pydantic model per method, discriminated by the ``method`` literal.
Conversion to and from the wire frame happens only in ``wire.py``.
"""

from decimal import Decimal
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, Field

from src.pm_channel.domain.models import (
    Allocation,
    ChannelDefinition,
    SignedState,
    StateSnapshot,
)
from src.pm_common.enums import StateIntent

# ---------------------------------------------------------------------------
# Shared payload pieces
# ---------------------------------------------------------------------------


class Allowance(BaseModel):
    asset: str
    amount: str


class WireAllocation(BaseModel):
    destination: str
    token: str
    amount: int

    def to_domain(self) -> Allocation:
        return Allocation(destination=self.destination, token=self.token, amount=self.amount)


class WireState(BaseModel):
    intent: int
    version: int
    state_data: str = Field(default="0x", validation_alias=AliasChoices("state_data", "data"))
    allocations: list[WireAllocation]

    def to_domain(self) -> StateSnapshot:
        return StateSnapshot(
            intent=StateIntent(self.intent),
            version=self.version,
            data=self.state_data or "0x",
            allocations=tuple(a.to_domain() for a in self.allocations),
        )


class WireChannel(BaseModel):
    participants: list[str]
    adjudicator: str
    challenge: int
    nonce: int

    def to_domain(self) -> ChannelDefinition:
        return ChannelDefinition(
            participants=tuple(self.participants),
            adjudicator=self.adjudicator,
            challenge=self.challenge,
            nonce=self.nonce,
        )


class ChannelInfo(BaseModel):
    """One entry of a ``channels`` status push."""
    channel_id: str
    status: str
    participant: str | None = None
    token: str | None = None
    amount: int = 0
    chain_id: int | None = None


class LedgerBalance(BaseModel):
    asset: str
    amount: Decimal


# ---------------------------------------------------------------------------
# Outbound (client -> clearnode)
# ---------------------------------------------------------------------------


class _Outbound(BaseModel):
    def params(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"method"}, exclude_none=True)


class AuthRequest(_Outbound):
    method: Literal["auth_request"] = "auth_request"
    address: str
    session_key: str
    application: str
    allowances: list[Allowance]
    expires_at: int
    scope: str


class AuthVerify(_Outbound):
    """Signed by the user's wallet (EIP-712), not by the session key."""
    method: Literal["auth_verify"] = "auth_verify"
    challenge: str
    signature: str

    def params(self) -> dict[str, Any]:
        return {"challenge": self.challenge}


class CreateChannelRequest(_Outbound):
    method: Literal["create_channel"] = "create_channel"
    chain_id: int
    token: str


class ResizeChannelRequest(_Outbound):
    method: Literal["resize_channel"] = "resize_channel"
    channel_id: str
    funds_destination: str
    allocate_amount: int | None = None  # pulled from the unified (off-chain) balance


class CloseChannelRequest(_Outbound):
    method: Literal["close_channel"] = "close_channel"
    channel_id: str
    funds_destination: str


class GetLedgerBalancesRequest(_Outbound):
    method: Literal["get_ledger_balances"] = "get_ledger_balances"
    participant: str


OutboundMessage = Union[
    AuthRequest,
    AuthVerify,
    CreateChannelRequest,
    ResizeChannelRequest,
    CloseChannelRequest,
    GetLedgerBalancesRequest,
]

# ---------------------------------------------------------------------------
# Inbound (clearnode -> client)
# ---------------------------------------------------------------------------


class _Inbound(BaseModel):
    request_id: int | None = None


class AuthChallenge(_Inbound):
    method: Literal["auth_challenge"] = "auth_challenge"
    challenge_message: str


class AuthVerifyResult(_Inbound):
    method: Literal["auth_verify"] = "auth_verify"
    success: bool = False
    address: str | None = None
    session_key: str | None = None
    jwt_token: str | None = None


class CreateChannelResponse(_Inbound):
    method: Literal["create_channel"] = "create_channel"
    channel_id: str
    channel: WireChannel
    state: WireState
    server_signature: str


class ResizeChannelResponse(_Inbound):
    method: Literal["resize_channel"] = "resize_channel"
    channel_id: str
    state: WireState
    server_signature: str

    def signed_state(self) -> SignedState:
        return SignedState(self.channel_id, self.state.to_domain(), self.server_signature)


class CloseChannelResponse(_Inbound):
    method: Literal["close_channel"] = "close_channel"
    channel_id: str
    state: WireState
    server_signature: str

    def signed_state(self) -> SignedState:
        return SignedState(self.channel_id, self.state.to_domain(), self.server_signature)


class ChannelsUpdate(_Inbound):
    method: Literal["channels"] = "channels"
    channels: list[ChannelInfo] = []


class BalanceUpdate(_Inbound):
    method: Literal["bu"] = "bu"
    balance_updates: list[LedgerBalance] = []


class LedgerBalances(_Inbound):
    method: Literal["get_ledger_balances"] = "get_ledger_balances"
    ledger_balances: list[LedgerBalance] = []


class ErrorMessage(_Inbound):
    method: Literal["error"] = "error"
    error: str


InboundMessage = Annotated[
    Union[
        AuthChallenge,
        AuthVerifyResult,
        CreateChannelResponse,
        ResizeChannelResponse,
        CloseChannelResponse,
        ChannelsUpdate,
        BalanceUpdate,
        LedgerBalances,
        ErrorMessage,
    ],
    Field(discriminator="method"),
]
