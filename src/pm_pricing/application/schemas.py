"""Pydantic schemas for pm_pricing API requests and responses.

Range checks live in the domain so that bad inputs surface as
InvalidArgumentError (1001) rather than a generic validation error.
"""

from pydantic import BaseModel

from config.settings import settings
from src.pm_pricing.domain.models import Quote


class QuoteRequest(BaseModel):
    yes_shares: float
    no_shares: float
    liquidity_param: float = settings.DEFAULT_LIQUIDITY_PARAM


class CostRequest(BaseModel):
    yes_shares: float
    no_shares: float
    amount: float
    buy_yes: bool
    liquidity_param: float = settings.DEFAULT_LIQUIDITY_PARAM


class PayoutRequest(BaseModel):
    shares: float
    won: bool


class QuoteResponse(BaseModel):
    yes_price: float
    no_price: float

    @classmethod
    def from_domain(cls, q: Quote) -> "QuoteResponse":
        return cls(yes_price=q.yes_price, no_price=q.no_price)


class CostResponse(BaseModel):
    cost: float
    quote_after: QuoteResponse


class PayoutResponse(BaseModel):
    payout: float
