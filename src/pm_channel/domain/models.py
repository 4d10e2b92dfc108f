"""Domain models for pm_channel — pure dataclasses, no web3 dependency.

Amounts are integers in the token's base units.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.pm_common.enums import ChannelStatus, OperationKind, StateIntent


@dataclass(frozen=True)
class Allocation:
    destination: str
    token: str
    amount: int


@dataclass(frozen=True)
class StateSnapshot:
    intent: StateIntent
    version: int
    data: str                         # hex bytes, "0x" when empty
    allocations: tuple[Allocation, ...]
    signatures: tuple[str, ...] = ()  # as read back from the ledger; empty for proposals

    def total_for(self, token: str) -> int:
        return sum(a.amount for a in self.allocations if a.token.lower() == token.lower())


@dataclass(frozen=True)
class SignedState:
    """A state co-signed by the clearnode, ready to be ratified on-chain."""
    channel_id: str
    state: StateSnapshot
    server_signature: str


@dataclass(frozen=True)
class ChannelDefinition:
    participants: tuple[str, ...]     # [user, clearnode]
    adjudicator: str
    challenge: int                    # seconds
    nonce: int


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    succeeded: bool
    block_number: int | None = None


@dataclass(frozen=True)
class OnChainChannel:
    """Channel as read back from the custody contract — the source of truth."""
    channel_id: str
    participants: tuple[str, ...]
    last_valid_state: StateSnapshot | None


@dataclass
class Channel:
    """Provisional in-memory mirror of a channel; reconciled after each confirmation."""
    channel_id: str
    chain_id: int
    token: str
    participants: tuple[str, ...] = ()
    status: ChannelStatus = ChannelStatus.NONE
    allocations: tuple[Allocation, ...] = ()
    history: list[ChannelStatus] = field(default_factory=list)
    close_confirmed: bool = False     # close ratified, withdrawal still outstanding

    def amount_for(self, destination: str) -> int:
        return sum(
            a.amount
            for a in self.allocations
            if a.destination.lower() == destination.lower() and a.token.lower() == self.token.lower()
        )


@dataclass
class PendingOperation:
    kind: OperationKind
    channel_id: str | None            # None while a create has no id yet
    expected_amount: int
    requested_at: datetime
    response: asyncio.Future = field(repr=False)
    request_id: int | None = None     # errors are matched on it, responses on channel_id
    abandoned: bool = False


@dataclass(frozen=True)
class UnifiedBalance:
    """Off-chain balances pushed by the clearnode, per asset."""
    assets: dict[str, Decimal]

    @property
    def total(self) -> Decimal:
        return sum(self.assets.values(), Decimal(0))
