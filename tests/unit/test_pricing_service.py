"""Unit tests for PricingApplicationService and quote_market."""

from unittest.mock import AsyncMock

import pytest

from src.pm_pricing.application.schemas import CostRequest, PayoutRequest, QuoteRequest
from src.pm_pricing.application.service import PricingApplicationService, quote_market
from src.pm_pricing.domain.models import ShareSupply


class TestService:
    def test_quote(self) -> None:
        resp = PricingApplicationService().quote(QuoteRequest(yes_shares=0, no_shares=0))
        assert resp.yes_price == 0.5
        assert resp.no_price == 0.5

    def test_cost_includes_quote_after_trade(self) -> None:
        resp = PricingApplicationService().cost(
            CostRequest(yes_shares=0, no_shares=0, amount=10, buy_yes=True, liquidity_param=100)
        )
        assert resp.cost == pytest.approx(5.124948, rel=1e-5)
        assert resp.quote_after.yes_price > 0.5
        assert resp.quote_after.no_price < 0.5

    def test_default_liquidity_param(self) -> None:
        assert QuoteRequest(yes_shares=1, no_shares=2).liquidity_param == 100.0

    def test_payout(self) -> None:
        assert PricingApplicationService().payout(PayoutRequest(shares=3, won=True)).payout == 3


class TestQuoteMarket:
    async def test_reads_supply_every_call(self) -> None:
        reader = AsyncMock()
        reader.get_share_supply.side_effect = [
            ShareSupply(yes_shares=0, no_shares=0, liquidity_param=100),
            ShareSupply(yes_shares=100, no_shares=0, liquidity_param=100),
        ]

        first = await quote_market("MKT-1", reader)
        second = await quote_market("MKT-1", reader)

        assert first.yes_price == 0.5
        assert second.yes_price == pytest.approx(0.7310586, rel=1e-6)
        assert reader.get_share_supply.await_count == 2
