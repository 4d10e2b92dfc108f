"""Web3CustodyGateway — LedgerGateway backed by the custody contract.

Reads go through ``eth_call``; writes are built, signed locally with the
user's LocalAccount and awaited to a receipt. State signatures follow the
custody contract: the user signs the ABI-packed state (EIP-191), and the
clearnode's co-signature is appended after it.
"""

import logging
from typing import Any

from eth_abi import encode
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from config.settings import settings
from src.pm_channel.domain.models import (
    Allocation,
    ChannelDefinition,
    OnChainChannel,
    Receipt,
    SignedState,
    StateSnapshot,
)
from src.pm_channel.infrastructure.abi import CUSTODY_ABI, PACKED_STATE_TYPES
from src.pm_channel.infrastructure.addresses import get_contract_addresses
from src.pm_common.enums import StateIntent

logger = logging.getLogger(__name__)


def _hex(value: bytes) -> str:
    return "0x" + bytes(value).hex()


def _to_bytes(hexstr: str) -> bytes:
    return Web3.to_bytes(hexstr=hexstr) if hexstr and hexstr != "0x" else b""


def _allocations_tuple(state: StateSnapshot) -> list[tuple[str, str, int]]:
    return [
        (Web3.to_checksum_address(a.destination), Web3.to_checksum_address(a.token), a.amount)
        for a in state.allocations
    ]


def pack_state(channel_id: str, state: StateSnapshot) -> bytes:
    """ABI-encoded (channelId, intent, version, data, allocations), the bytes both parties sign."""
    return encode(
        PACKED_STATE_TYPES,
        [
            _to_bytes(channel_id),
            int(state.intent),
            state.version,
            _to_bytes(state.data),
            _allocations_tuple(state),
        ],
    )


def _decode_state(raw: Any) -> StateSnapshot | None:
    intent, version, data, allocations, sigs = raw
    if not allocations:
        return None
    return StateSnapshot(
        intent=StateIntent(intent),
        version=version,
        data=_hex(data),
        allocations=tuple(Allocation(destination=d, token=t, amount=amt) for d, t, amt in allocations),
        signatures=tuple(_hex(s) for s in sigs),
    )


class Web3CustodyGateway:
    def __init__(
        self,
        w3: AsyncWeb3,
        account: LocalAccount,
        custody_address: str,
        chain_id: int,
        receipt_timeout: float = settings.CONFIRMATION_TIMEOUT_SECONDS,
    ) -> None:
        self._w3 = w3
        self._account = account
        self._chain_id = chain_id
        self._receipt_timeout = receipt_timeout
        self._custody = w3.eth.contract(address=Web3.to_checksum_address(custody_address), abi=CUSTODY_ABI)

    @classmethod
    def connect(
        cls,
        account: LocalAccount,
        chain_id: int = settings.CHAIN_ID,
        rpc_url: str = settings.RPC_URL,
    ) -> "Web3CustodyGateway":
        addresses = get_contract_addresses(chain_id)
        logger.info("Custody gateway on chain %d at %s via %s", chain_id, addresses.custody, rpc_url)
        return cls(AsyncWeb3(AsyncHTTPProvider(rpc_url)), account, addresses.custody, chain_id)

    # --- state signing ---

    def sign_state(self, channel_id: str, state: StateSnapshot) -> str:
        signed = self._account.sign_message(encode_defunct(primitive=pack_state(channel_id, state)))
        return _hex(signed.signature)

    def _state_tuple(self, state: StateSnapshot, sigs: list[str]) -> tuple:
        return (
            int(state.intent),
            state.version,
            _to_bytes(state.data),
            _allocations_tuple(state),
            [_to_bytes(s) for s in sigs],
        )

    def _co_signed(self, signed: SignedState) -> tuple:
        user_sig = self.sign_state(signed.channel_id, signed.state)
        return self._state_tuple(signed.state, [user_sig, signed.server_signature])

    # --- reads ---

    async def get_account_balance(self, user: str, token: str) -> int:
        balances = await self._custody.functions.getAccountsBalances(
            [Web3.to_checksum_address(user)], [Web3.to_checksum_address(token)]
        ).call()
        return int(balances[0]) if balances else 0

    async def get_channel_data(self, channel_id: str) -> OnChainChannel:
        channel, _status, _wallets, _expiry, last_valid = await self._custody.functions.getChannelData(
            _to_bytes(channel_id)
        ).call()
        participants = channel[0]
        return OnChainChannel(
            channel_id=channel_id,
            participants=tuple(participants),
            last_valid_state=_decode_state(last_valid),
        )

    async def get_open_channels(self, user: str) -> list[str]:
        per_account = await self._custody.functions.getOpenChannels([Web3.to_checksum_address(user)]).call()
        return [_hex(cid) for cid in per_account[0]] if per_account else []

    # --- writes ---

    async def submit_create_channel(
        self,
        channel: ChannelDefinition,
        unsigned_state: StateSnapshot,
        server_signature: str,
    ) -> Receipt:
        channel_tuple = (
            [Web3.to_checksum_address(p) for p in channel.participants],
            Web3.to_checksum_address(channel.adjudicator),
            channel.challenge,
            channel.nonce,
        )
        channel_id = _hex(Web3.keccak(encode(
            ["address[]", "address", "uint64", "uint64", "uint256"],
            [channel_tuple[0], channel_tuple[1], channel.challenge, channel.nonce, self._chain_id],
        )))
        user_sig = self.sign_state(channel_id, unsigned_state)
        state = self._state_tuple(unsigned_state, [user_sig, server_signature])
        return await self._transact(self._custody.functions.create(channel_tuple, state), "create")

    async def submit_resize(self, resize_state: SignedState, proof_states: list[StateSnapshot]) -> Receipt:
        proofs = [self._state_tuple(p, list(p.signatures)) for p in proof_states]
        fn = self._custody.functions.resize(
            _to_bytes(resize_state.channel_id), self._co_signed(resize_state), proofs
        )
        return await self._transact(fn, "resize")

    async def submit_close(self, final_state: SignedState) -> Receipt:
        fn = self._custody.functions.close(_to_bytes(final_state.channel_id), self._co_signed(final_state), [])
        return await self._transact(fn, "close")

    async def submit_withdrawal(self, token: str, amount: int) -> Receipt:
        fn = self._custody.functions.withdraw(Web3.to_checksum_address(token), amount)
        return await self._transact(fn, "withdraw")

    async def _transact(self, fn: Any, label: str) -> Receipt:
        sender = self._account.address
        tx = await fn.build_transaction(
            {
                "from": sender,
                "chainId": self._chain_id,
                "nonce": await self._w3.eth.get_transaction_count(sender),
            }
        )
        signed = self._account.sign_transaction(tx)
        tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info("%s submitted: %s", label, _hex(tx_hash))
        receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        return Receipt(
            tx_hash=_hex(tx_hash),
            succeeded=receipt["status"] == 1,
            block_number=receipt.get("blockNumber"),
        )
