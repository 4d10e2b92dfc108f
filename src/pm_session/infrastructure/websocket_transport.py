"""Websocket transport to the clearnode.

One reader task per connection delivers frames in arrival order. Dropped
connections are reported once through ``on_close``; reconnecting is left to
the caller.
"""

import asyncio
import logging

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from src.pm_common.errors import NotConnectedError, TransportError
from src.pm_session.domain.transport import CloseCallback, MessageCallback

logger = logging.getLogger(__name__)


class WebSocketTransport:
    def __init__(self, url: str, open_timeout: float = 10.0) -> None:
        self._url = url
        self._open_timeout = open_timeout
        self._ws: ClientConnection | None = None
        self._reader: asyncio.Task[None] | None = None
        self._closing = False

    async def open(self, on_message: MessageCallback, on_close: CloseCallback) -> None:
        try:
            self._ws = await connect(self._url, open_timeout=self._open_timeout)
        except (OSError, TimeoutError, WebSocketException) as exc:
            raise TransportError(f"cannot connect to {self._url}: {exc}") from exc
        logger.info("Connected to %s", self._url)
        self._reader = asyncio.create_task(self._read_loop(self._ws, on_message, on_close))

    async def _read_loop(
        self,
        ws: ClientConnection,
        on_message: MessageCallback,
        on_close: CloseCallback,
    ) -> None:
        error: Exception | None = None
        try:
            async for raw in ws:
                on_message(raw)
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as exc:
            error = TransportError(f"connection closed unexpectedly: {exc}")
        except OSError as exc:
            error = TransportError(f"socket error: {exc}")
        except Exception as exc:
            logger.exception("Reader for %s failed", self._url)
            error = TransportError(f"reader failed: {exc}")
            await ws.close()
        if not self._closing:
            logger.warning("Connection to %s closed: %s", self._url, error or "normal closure")
            on_close(error)

    async def send(self, text: str) -> None:
        if self._ws is None:
            raise NotConnectedError()
        try:
            await self._ws.send(text)
        except ConnectionClosed as exc:
            raise TransportError(f"send failed: {exc}") from exc

    async def close(self) -> None:
        self._closing = True
        if self._ws is not None:
            await self._ws.close()
        if self._reader is not None:
            await self._reader
        self._ws = None
        self._reader = None
