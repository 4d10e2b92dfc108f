"""Pricing application service — thin orchestration over the LMSR domain."""

import logging

from src.pm_pricing.application.schemas import (
    CostRequest,
    CostResponse,
    PayoutRequest,
    PayoutResponse,
    QuoteRequest,
    QuoteResponse,
)
from src.pm_pricing.domain import lmsr
from src.pm_pricing.domain.models import Quote
from src.pm_pricing.domain.repository import ShareSupplyReader

logger = logging.getLogger(__name__)


class PricingApplicationService:
    def quote(self, req: QuoteRequest) -> QuoteResponse:
        q = lmsr.quote(req.yes_shares, req.no_shares, req.liquidity_param)
        return QuoteResponse.from_domain(q)

    def cost(self, req: CostRequest) -> CostResponse:
        cost = lmsr.cost_to_buy(
            req.yes_shares, req.no_shares, req.amount, req.buy_yes, req.liquidity_param
        )
        new_yes = req.yes_shares + req.amount if req.buy_yes else req.yes_shares
        new_no = req.no_shares if req.buy_yes else req.no_shares + req.amount
        after = lmsr.quote(new_yes, new_no, req.liquidity_param)
        return CostResponse(cost=cost, quote_after=QuoteResponse.from_domain(after))

    def payout(self, req: PayoutRequest) -> PayoutResponse:
        return PayoutResponse(payout=lmsr.payout(req.shares, req.won))


async def quote_market(market_id: str, reader: ShareSupplyReader) -> Quote:
    """Quote a market from a freshly read ShareSupply (never cached)."""
    supply = await reader.get_share_supply(market_id)
    q = lmsr.quote_supply(supply)
    logger.debug(
        "quote %s yes=%s no=%s b=%s -> %.4f/%.4f",
        market_id,
        supply.yes_shares,
        supply.no_shares,
        supply.liquidity_param,
        q.yes_price,
        q.no_price,
    )
    return q
