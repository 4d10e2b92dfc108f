"""Single translation point between protocol variants and wire frames.

Request frame:   {"req": [request_id, method, params, timestamp_ms], "sig": [...]}
Response frame:  {"res": [request_id, method, params, timestamp_ms], "sig": [...]}

Request signatures cover the compact JSON of the ``req`` array. ``auth_request``
goes out unsigned; ``auth_verify`` carries the wallet's EIP-712 signature;
everything else is signed by the session key.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import TypeAdapter, ValidationError

from src.pm_common.enums import RPCMethod
from src.pm_common.errors import MalformedMessageError
from src.pm_session.protocol.messages import (
    AuthRequest,
    AuthVerify,
    InboundMessage,
    OutboundMessage,
)

logger = logging.getLogger(__name__)

PayloadSigner = Callable[[str], str]

_INBOUND: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)

_KNOWN_INBOUND = frozenset(
    {
        RPCMethod.AUTH_CHALLENGE.value,
        RPCMethod.AUTH_VERIFY.value,
        RPCMethod.CREATE_CHANNEL.value,
        RPCMethod.RESIZE_CHANNEL.value,
        RPCMethod.CLOSE_CHANNEL.value,
        RPCMethod.CHANNELS.value,
        RPCMethod.BALANCE_UPDATE.value,
        RPCMethod.GET_LEDGER_BALANCES.value,
        RPCMethod.ERROR.value,
    }
)


def _compact(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"))


def encode_request(
    message: OutboundMessage,
    request_id: int,
    timestamp_ms: int,
    signer: PayloadSigner | None = None,
) -> str:
    """Serialize an outbound variant into a request frame."""
    req = [request_id, message.method, message.params(), timestamp_ms]
    if isinstance(message, AuthVerify):
        sigs = [message.signature]
    elif isinstance(message, AuthRequest) or signer is None:
        sigs = []
    else:
        sigs = [signer(_compact(req))]
    return _compact({"req": req, "sig": sigs})


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error.get("error") or error)
    return str(error)


def decode_frame(raw: str | bytes) -> InboundMessage | None:
    """Parse a response frame into its inbound variant.

    Returns None for methods outside the closed set (pings, asset lists, ...).
    Raises MalformedMessageError when the frame cannot be interpreted.
    """
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedMessageError(f"invalid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedMessageError("frame is not an object")

    if "res" not in payload:
        if "error" in payload:
            return _INBOUND.validate_python(
                {"method": RPCMethod.ERROR.value, "error": _error_text(payload["error"])}
            )
        raise MalformedMessageError("frame has neither 'res' nor 'error'")

    res = payload["res"]
    if not isinstance(res, list) or len(res) < 3:
        raise MalformedMessageError("'res' must be [request_id, method, params, timestamp]")
    request_id, method, params = res[0], res[1], res[2]
    if not isinstance(method, str):
        raise MalformedMessageError(f"method must be a string, got {type(method).__name__}")

    if method not in _KNOWN_INBOUND:
        logger.debug("Dropping unhandled method %r", method)
        return None

    if method == RPCMethod.ERROR.value:
        if isinstance(params, dict) and "error" in params:
            params = params["error"]
        body: dict[str, Any] = {"error": _error_text(params)}
    elif isinstance(params, dict):
        body = dict(params)
    else:
        raise MalformedMessageError(f"params of {method!r} must be an object")

    body["method"] = method
    body["request_id"] = request_id if isinstance(request_id, int) else None
    try:
        return _INBOUND.validate_python(body)
    except ValidationError as exc:
        raise MalformedMessageError(f"{method}: {exc.error_count()} invalid field(s)") from exc
