"""LedgerGateway Protocol — the on-chain custody contract as seen by the core.

Write operations return only once the transaction has a receipt; callers
bound them with their own confirmation timeout. Unit tests inject a mock
that conforms to this Protocol; infrastructure provides the web3 version.
"""

from typing import Protocol

from src.pm_channel.domain.models import (
    ChannelDefinition,
    OnChainChannel,
    Receipt,
    SignedState,
    StateSnapshot,
)


class LedgerGateway(Protocol):
    async def get_account_balance(self, user: str, token: str) -> int: ...

    async def get_channel_data(self, channel_id: str) -> OnChainChannel: ...

    async def get_open_channels(self, user: str) -> list[str]: ...

    async def submit_create_channel(
        self,
        channel: ChannelDefinition,
        unsigned_state: StateSnapshot,
        server_signature: str,
    ) -> Receipt: ...

    async def submit_resize(
        self, resize_state: SignedState, proof_states: list[StateSnapshot]
    ) -> Receipt: ...

    async def submit_close(self, final_state: SignedState) -> Receipt: ...

    async def submit_withdrawal(self, token: str, amount: int) -> Receipt: ...
