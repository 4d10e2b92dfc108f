"""Custody contract ABI fragments used by the gateway.

Struct layouts:
  Channel    (address[] participants, address adjudicator, uint64 challenge, uint64 nonce)
  State      (uint8 intent, uint256 version, bytes data, Allocation[] allocations, bytes[] sigs)
  Allocation (address destination, address token, uint256 amount)
"""

_ALLOCATION = {
    "name": "allocations",
    "type": "tuple[]",
    "components": [
        {"name": "destination", "type": "address"},
        {"name": "token", "type": "address"},
        {"name": "amount", "type": "uint256"},
    ],
}


def _state(name: str, array: bool = False) -> dict:
    return {
        "name": name,
        "type": "tuple[]" if array else "tuple",
        "components": [
            {"name": "intent", "type": "uint8"},
            {"name": "version", "type": "uint256"},
            {"name": "data", "type": "bytes"},
            _ALLOCATION,
            {"name": "sigs", "type": "bytes[]"},
        ],
    }


_CHANNEL = {
    "name": "ch",
    "type": "tuple",
    "components": [
        {"name": "participants", "type": "address[]"},
        {"name": "adjudicator", "type": "address"},
        {"name": "challenge", "type": "uint64"},
        {"name": "nonce", "type": "uint64"},
    ],
}

# Packed form the participants sign: abi.encode(channelId, intent, version, data, allocations)
PACKED_STATE_TYPES = [
    "bytes32",
    "uint8",
    "uint256",
    "bytes",
    "(address,address,uint256)[]",
]

CUSTODY_ABI = [
    {
        "type": "function",
        "name": "create",
        "stateMutability": "nonpayable",
        "inputs": [_CHANNEL, _state("initial")],
        "outputs": [{"name": "channelId", "type": "bytes32"}],
    },
    {
        "type": "function",
        "name": "resize",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "channelId", "type": "bytes32"},
            _state("candidate"),
            _state("proofs", array=True),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "close",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "channelId", "type": "bytes32"},
            _state("candidate"),
            _state("proofs", array=True),
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "withdraw",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getAccountsBalances",
        "stateMutability": "view",
        "inputs": [
            {"name": "users", "type": "address[]"},
            {"name": "tokens", "type": "address[]"},
        ],
        "outputs": [{"name": "", "type": "uint256[]"}],
    },
    {
        "type": "function",
        "name": "getOpenChannels",
        "stateMutability": "view",
        "inputs": [{"name": "accounts", "type": "address[]"}],
        "outputs": [{"name": "", "type": "bytes32[][]"}],
    },
    {
        "type": "function",
        "name": "getChannelData",
        "stateMutability": "view",
        "inputs": [{"name": "channelId", "type": "bytes32"}],
        "outputs": [
            _CHANNEL,
            {"name": "status", "type": "uint8"},
            {"name": "wallets", "type": "address[]"},
            {"name": "challengeExpiry", "type": "uint256"},
            _state("lastValidState"),
        ],
    },
]
