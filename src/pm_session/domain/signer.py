"""Wallet signing capability supplied by the caller.

Only the user's primary wallet answers the auth challenge; the session key
never does.
"""

from typing import Any, Protocol


class WalletSigner(Protocol):
    @property
    def address(self) -> str: ...

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> str: ...
