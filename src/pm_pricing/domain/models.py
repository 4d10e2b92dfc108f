"""Domain models for pm_pricing — pure dataclasses."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ShareSupply:
    yes_shares: float
    no_shares: float
    liquidity_param: float   # LMSR b, > 0


@dataclass(frozen=True)
class Quote:
    yes_price: float   # [0.01, 0.99]
    no_price: float    # [0.01, 0.99], not renormalised against yes_price
