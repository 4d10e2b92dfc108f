"""ShareSupply reader Protocol.

Supply changes with every trade, so it is read fresh for each quote and
never cached. Unit tests inject a mock conforming to this Protocol.
"""

from typing import Protocol

from src.pm_pricing.domain.models import ShareSupply


class ShareSupplyReader(Protocol):
    async def get_share_supply(self, market_id: str) -> ShareSupply: ...
