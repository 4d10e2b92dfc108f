"""Transport Protocol — the persistent message pipe to the clearnode.

``open`` registers two callbacks: ``on_message`` receives every frame (text or
binary, undecoded) in arrival order; ``on_close`` fires once when the peer or the network ends the
connection (None for a normal closure). A close requested through ``close``
does not fire ``on_close``.
"""

from collections.abc import Callable
from typing import Protocol

MessageCallback = Callable[[str | bytes], None]
CloseCallback = Callable[[Exception | None], None]


class Transport(Protocol):
    async def open(self, on_message: MessageCallback, on_close: CloseCallback) -> None: ...

    async def send(self, text: str) -> None: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[], Transport]
