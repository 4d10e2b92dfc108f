"""EIP-712 typed data signed by the user's wallet to answer an auth challenge."""

from typing import Any

from src.pm_session.protocol.messages import Allowance

_TYPES: dict[str, list[dict[str, str]]] = {
    "EIP712Domain": [{"name": "name", "type": "string"}],
    "Policy": [
        {"name": "challenge", "type": "string"},
        {"name": "scope", "type": "string"},
        {"name": "wallet", "type": "address"},
        {"name": "session_key", "type": "address"},
        {"name": "expires_at", "type": "uint64"},
        {"name": "allowances", "type": "Allowance[]"},
    ],
    "Allowance": [
        {"name": "asset", "type": "string"},
        {"name": "amount", "type": "string"},
    ],
}


def build_auth_typed_data(
    *,
    challenge: str,
    wallet: str,
    session_key: str,
    application: str,
    scope: str,
    allowances: list[Allowance],
    expires_at: int,
) -> dict[str, Any]:
    """Full EIP-712 message; the domain name is the application name."""
    return {
        "types": _TYPES,
        "primaryType": "Policy",
        "domain": {"name": application},
        "message": {
            "challenge": challenge,
            "scope": scope,
            "wallet": wallet,
            "session_key": session_key,
            "expires_at": expires_at,
            "allowances": [a.model_dump() for a in allowances],
        },
    }
