"""Ephemeral session keys.

A fresh keypair is generated for every authentication attempt and discarded
on disconnect. It signs protocol requests so the user's wallet is prompted
only once, for the auth challenge.
"""

from dataclasses import dataclass, field

from eth_account import Account
from web3 import Web3


@dataclass(frozen=True)
class SessionKey:
    private_key: str = field(repr=False)
    address: str

    def sign_payload(self, payload: str) -> str:
        """Raw ECDSA signature over keccak256(payload), 0x-prefixed."""
        digest = Web3.keccak(text=payload)
        signed = Account.from_key(self.private_key).unsafe_sign_hash(digest)
        return "0x" + bytes(signed.signature).hex()


def generate_session_key() -> SessionKey:
    account = Account.create()
    return SessionKey(private_key="0x" + bytes(account.key).hex(), address=account.address)
