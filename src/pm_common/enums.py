"""Global enums shared by the session and channel contexts.

String values of ``ChannelStatus`` and ``RPCMethod`` match what the clearnode
puts on the wire.
"""

from enum import Enum, IntEnum


class AuthState(str, Enum):
    IDLE = "IDLE"
    AWAITING_CHALLENGE = "AWAITING_CHALLENGE"
    AWAITING_VERIFY = "AWAITING_VERIFY"
    AUTHENTICATED = "AUTHENTICATED"
    FAILED = "FAILED"


class ChannelStatus(str, Enum):
    NONE = "none"
    CREATING = "creating"
    AWAITING_FUNDING = "awaiting_funding"
    RESIZING = "resizing"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    FAILED = "failed"


class OperationKind(str, Enum):
    CREATE = "CREATE"
    RESIZE = "RESIZE"
    CLOSE = "CLOSE"


class StateIntent(IntEnum):
    """Custody contract state intent (uint8 on-chain)."""
    OPERATE = 0
    INITIALIZE = 1
    RESIZE = 2
    FINALIZE = 3


class RPCMethod(str, Enum):
    AUTH_REQUEST = "auth_request"
    AUTH_CHALLENGE = "auth_challenge"
    AUTH_VERIFY = "auth_verify"
    CREATE_CHANNEL = "create_channel"
    RESIZE_CHANNEL = "resize_channel"
    CLOSE_CHANNEL = "close_channel"
    CHANNELS = "channels"
    BALANCE_UPDATE = "bu"
    GET_LEDGER_BALANCES = "get_ledger_balances"
    ERROR = "error"
