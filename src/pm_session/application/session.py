"""ChannelSessionManager — one authenticated session with the clearnode.

Explicitly owned: callers construct it with a transport factory and pass it
to the channel coordinator. Lifecycle is ``connect`` → ``authenticate`` →
(``send_message`` / ``listen``) → ``disconnect``.

Inbound frames are decoded once, fed to the auth state machine, then fanned
out to listeners in arrival order.
"""

import asyncio
import itertools
import logging
from collections.abc import Callable

from config.settings import settings
from src.pm_common.datetime_utils import now_ms, unix_now
from src.pm_common.enums import AuthState
from src.pm_common.errors import (
    AppError,
    AuthenticationError,
    AuthTimeoutError,
    MalformedMessageError,
    NotConnectedError,
    OperationInProgressError,
    TransportError,
)
from src.pm_session.application.schemas import AuthParams
from src.pm_session.domain.auth_machine import AuthEffect, AuthStep, auth_transition
from src.pm_session.domain.session_key import SessionKey, generate_session_key
from src.pm_session.domain.signer import WalletSigner
from src.pm_session.domain.transport import Transport, TransportFactory
from src.pm_session.protocol.eip712 import build_auth_typed_data
from src.pm_session.protocol.messages import (
    AuthRequest,
    AuthVerify,
    InboundMessage,
    OutboundMessage,
)
from src.pm_session.protocol.wire import decode_frame, encode_request

logger = logging.getLogger(__name__)

MessageListener = Callable[[InboundMessage], None]
ErrorListener = Callable[[AppError], None]

_AUTH_IN_FLIGHT = (AuthState.AWAITING_CHALLENGE, AuthState.AWAITING_VERIFY)


class ChannelSessionManager:
    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        connect_timeout: float = settings.CONNECT_TIMEOUT_SECONDS,
        auth_step_timeout: float = settings.AUTH_STEP_TIMEOUT_SECONDS,
        session_key_factory: Callable[[], SessionKey] = generate_session_key,
    ) -> None:
        self._transport_factory = transport_factory
        self._connect_timeout = connect_timeout
        self._auth_step_timeout = auth_step_timeout
        self._session_key_factory = session_key_factory

        self._transport: Transport | None = None
        self._connecting: asyncio.Task[None] | None = None
        self._auth_state = AuthState.IDLE
        self._auth_step: asyncio.Future[AuthStep] | None = None
        self._session_key: SessionKey | None = None
        self._wallet_address: str | None = None
        self._request_ids = itertools.count(1)
        self._listeners: list[MessageListener] = []
        self._error_listeners: list[ErrorListener] = []
        self.last_error: AppError | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def auth_state(self) -> AuthState:
        return self._auth_state

    @property
    def is_connected(self) -> bool:
        return self._transport is not None

    @property
    def is_authenticated(self) -> bool:
        return self._auth_state is AuthState.AUTHENTICATED

    @property
    def session_key(self) -> SessionKey | None:
        return self._session_key

    @property
    def wallet_address(self) -> str | None:
        return self._wallet_address

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport. No-op when connected; joins an attempt in flight."""
        if self._transport is not None:
            return
        if self._connecting is None:
            self._connecting = asyncio.create_task(self._open_transport())
        await asyncio.shield(self._connecting)

    async def _open_transport(self) -> None:
        transport = self._transport_factory()
        try:
            await asyncio.wait_for(
                transport.open(self._on_frame, self._on_transport_closed),
                self._connect_timeout,
            )
        except TimeoutError as exc:
            raise TransportError(f"handshake timed out after {self._connect_timeout}s") from exc
        except OSError as exc:
            raise TransportError(str(exc)) from exc
        else:
            self._transport = transport
            logger.info("Session transport connected")
        finally:
            self._connecting = None

    async def disconnect(self) -> None:
        """Tear down the transport and forget the session key. Safe from any state."""
        transport, self._transport = self._transport, None
        self._reset_session()
        if self._auth_step is not None and not self._auth_step.done():
            self._auth_step.set_exception(NotConnectedError())
        if transport is not None:
            await transport.close()
            logger.info("Session transport disconnected")

    def _reset_session(self) -> None:
        self._auth_state = AuthState.IDLE
        self._session_key = None
        self._wallet_address = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise NotConnectedError()
        return self._transport

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self, signer: WalletSigner, params: AuthParams) -> None:
        """Challenge-response login; resolves once the clearnode verifies.

        A second call while one is in flight is rejected, never queued, so
        only one session key is ever generated per attempt.
        """
        if self._auth_state in _AUTH_IN_FLIGHT:
            raise OperationInProgressError("authenticate")
        if self._auth_state is AuthState.AUTHENTICATED:
            raise AuthenticationError("session already authenticated")
        self._require_transport()

        key = self._session_key_factory()
        self._session_key = key
        self._wallet_address = signer.address
        self._auth_state = AuthState.AWAITING_CHALLENGE
        expires_at = unix_now() + params.expires_in_seconds

        logger.info("Requesting authentication for %s (session key %s)", signer.address, key.address)
        try:
            step = await self._send_and_wait(
                AuthRequest(
                    address=signer.address,
                    session_key=key.address,
                    application=params.application,
                    allowances=params.allowances,
                    expires_at=expires_at,
                    scope=params.scope,
                ),
                "auth_challenge",
            )
            if step.effect is AuthEffect.REJECT:
                raise AuthenticationError(step.reason)

            typed_data = build_auth_typed_data(
                challenge=step.challenge or "",
                wallet=signer.address,
                session_key=key.address,
                application=params.application,
                scope=params.scope,
                allowances=params.allowances,
                expires_at=expires_at,
            )
            signature = await signer.sign_typed_data(typed_data)
            step = await self._send_and_wait(
                AuthVerify(challenge=step.challenge or "", signature=signature), "auth_verify"
            )
            if step.effect is AuthEffect.REJECT:
                raise AuthenticationError(step.reason)
        except AuthTimeoutError:
            if self._session_key is key:
                self._reset_session()
            raise
        except Exception:
            if self._session_key is key:
                self._auth_state = AuthState.FAILED
                self._session_key = None
            raise
        finally:
            self._auth_step = None
            # Cancelled mid-flight: free the session for a retry
            if self._session_key is key and self._auth_state in _AUTH_IN_FLIGHT:
                self._reset_session()

        logger.info("Authenticated %s", signer.address)

    async def _send_and_wait(self, message: OutboundMessage, awaiting: str) -> AuthStep:
        self._auth_step = asyncio.get_running_loop().create_future()
        await self.send_message(message)
        try:
            return await asyncio.wait_for(self._auth_step, self._auth_step_timeout)
        except TimeoutError as exc:
            logger.warning("Timed out waiting for %s", awaiting)
            raise AuthTimeoutError(awaiting, self._auth_step_timeout) from exc

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def send_message(self, message: OutboundMessage) -> int:
        """Sign and send one request; returns its request id."""
        transport = self._require_transport()
        signer = self._session_key.sign_payload if self._session_key is not None else None
        request_id = next(self._request_ids)
        frame = encode_request(message, request_id, now_ms(), signer)
        logger.debug("→ %s #%d", message.method, request_id)
        await transport.send(frame)
        return request_id

    def listen(self, callback: MessageListener) -> Callable[[], None]:
        """Subscribe to decoded inbound messages; returns an unsubscribe callable."""
        self._require_transport()
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def on_error(self, callback: ErrorListener) -> Callable[[], None]:
        """Subscribe to transport and protocol error events."""
        self._error_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._error_listeners:
                self._error_listeners.remove(callback)

        return unsubscribe

    def _on_frame(self, raw: str | bytes) -> None:
        try:
            message = decode_frame(raw)
        except MalformedMessageError as exc:
            self._emit_error(exc)
            return
        if message is None:
            return
        logger.debug("← %s", message.method)

        if self._auth_step is not None and not self._auth_step.done():
            step = auth_transition(self._auth_state, message)
            if step is not None:
                self._auth_state = step.next_state
                self._auth_step.set_result(step)

        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception("Listener failed on %s", message.method)

    def _on_transport_closed(self, error: Exception | None) -> None:
        self._transport = None
        if self._auth_step is not None and not self._auth_step.done():
            # authenticate() records FAILED when the step is rejected
            self._auth_step.set_exception(TransportError("connection lost during authentication"))
        else:
            self._reset_session()
        if error is not None:
            self._emit_error(error if isinstance(error, AppError) else TransportError(str(error)))

    def _emit_error(self, error: AppError) -> None:
        self.last_error = error
        logger.warning("Session error: %s", error.message)
        for listener in list(self._error_listeners):
            listener(error)
