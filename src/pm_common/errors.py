"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Pricing
  2xxx: Session / transport
  3xxx: Channel lifecycle
  9xxx: System

Every error carries a ``kind`` (the taxonomy name surfaced to callers) and,
when the counterparty supplied one, its raw ``reason`` string.
"""


class AppError(Exception):
    """Base application error."""

    kind: str = "AppError"

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        reason: str | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.reason = reason
        super().__init__(message)


# --- 1xxx: Pricing ---

class InvalidArgumentError(AppError):
    kind = "InvalidArgument"

    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Invalid argument: {detail}", 422)


# --- 2xxx: Session / transport ---

class TransportError(AppError):
    kind = "TransportError"

    def __init__(self, detail: str) -> None:
        super().__init__(2001, f"Transport error: {detail}", 502)


class NotConnectedError(AppError):
    kind = "NotConnectedError"

    def __init__(self) -> None:
        super().__init__(2002, "Not connected to the clearnode", 503)


class AuthenticationError(AppError):
    kind = "AuthenticationError"

    def __init__(self, reason: str | None = None) -> None:
        message = "Authentication failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(2003, message, 401, reason=reason)


class AuthTimeoutError(AppError):
    kind = "TimeoutError"

    def __init__(self, step: str, timeout: float) -> None:
        super().__init__(2004, f"Authentication timed out waiting for {step} ({timeout}s)", 504)


class NotAuthenticatedError(AppError):
    kind = "NotAuthenticatedError"

    def __init__(self) -> None:
        super().__init__(2005, "Session is not authenticated", 401)


class MalformedMessageError(AppError):
    kind = "MalformedMessageError"

    def __init__(self, detail: str) -> None:
        super().__init__(2006, f"Malformed protocol message: {detail}", 502)


# --- 3xxx: Channel lifecycle ---

class OperationInProgressError(AppError):
    kind = "OperationInProgress"

    def __init__(self, operation: str, channel_id: str | None = None) -> None:
        target = f" for channel {channel_id}" if channel_id else ""
        super().__init__(3001, f"{operation} already in progress{target}", 409)


class ChannelCreationError(AppError):
    kind = "ChannelCreationError"

    def __init__(self, detail: str, reason: str | None = None) -> None:
        super().__init__(3002, f"Channel creation failed: {detail}", 502, reason=reason)


class FundingTimeoutError(AppError):
    kind = "FundingTimeoutError"

    def __init__(self, channel_id: str, required: int, observed: int, attempts: int) -> None:
        super().__init__(
            3003,
            f"Funds not observed for channel {channel_id} after {attempts} attempts:"
            f" required {required}, custody balance {observed}",
            504,
        )


class ChannelResizeError(AppError):
    kind = "ChannelResizeError"

    def __init__(self, channel_id: str, detail: str, reason: str | None = None) -> None:
        super().__init__(3004, f"Resize of channel {channel_id} failed: {detail}", 502, reason=reason)


class ChannelCloseError(AppError):
    kind = "ChannelCloseError"

    def __init__(self, channel_id: str, detail: str, reason: str | None = None) -> None:
        super().__init__(3005, f"Close of channel {channel_id} failed: {detail}", 502, reason=reason)


class ChannelNotFoundError(AppError):
    kind = "ChannelNotFoundError"

    def __init__(self, channel_id: str) -> None:
        super().__init__(3006, f"Channel not found: {channel_id}", 404)


class InvalidChannelStateError(AppError):
    kind = "InvalidChannelStateError"

    def __init__(self, channel_id: str, status: str, operation: str) -> None:
        super().__init__(
            3007, f"Channel {channel_id} in status {status} cannot {operation}", 409
        )


class OperationAbandonedError(AppError):
    kind = "OperationAbandoned"

    def __init__(self, operation: str, channel_id: str | None = None) -> None:
        target = f" for channel {channel_id}" if channel_id else ""
        super().__init__(3008, f"{operation} was abandoned{target}", 409)


class ProtocolTimeoutError(AppError):
    kind = "TimeoutError"

    def __init__(self, operation: str, timeout: float, channel_id: str | None = None) -> None:
        target = f" for channel {channel_id}" if channel_id else ""
        super().__init__(3009, f"No {operation} response{target} within {timeout}s", 504)


# --- 9xxx: System ---

class InternalError(AppError):
    kind = "InternalError"

    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
