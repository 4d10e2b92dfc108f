"""LMSR (Logarithmic Market Scoring Rule) pricing for binary markets.

    C(q)      = b * ln(exp(q_yes / b) + exp(q_no / b))
    P(yes)    = exp(q_yes / b) / (exp(q_yes / b) + exp(q_no / b))
    cost(buy) = C(q after) - C(q before)

Exponentials are evaluated with the log-sum-exp shift (subtract the larger
exponent first) so large share/b ratios do not overflow.

Each price is clamped to [0.01, 0.99] on its own and the pair is NOT
renormalised, so yes_price + no_price may differ from 1 at the extremes.
"""

import math

from src.pm_common.errors import InvalidArgumentError
from src.pm_pricing.domain.models import Quote, ShareSupply

DEFAULT_LIQUIDITY_PARAM: float = 100.0
MIN_PRICE: float = 0.01
MAX_PRICE: float = 0.99


def _check_non_negative(name: str, value: float) -> None:
    if not math.isfinite(value) or value < 0:
        raise InvalidArgumentError(f"{name} must be a finite non-negative number, got {value}")


def _check_liquidity(liquidity_param: float) -> None:
    if not math.isfinite(liquidity_param) or liquidity_param <= 0:
        raise InvalidArgumentError(
            f"liquidity_param must be a finite positive number, got {liquidity_param}"
        )


def _clamp(price: float) -> float:
    return max(MIN_PRICE, min(MAX_PRICE, price))


def _log_sum_exp(a: float, b: float) -> float:
    m = max(a, b)
    return m + math.log(math.exp(a - m) + math.exp(b - m))


def cost_function(yes_shares: float, no_shares: float, liquidity_param: float) -> float:
    """LMSR potential C(q) = b * ln(exp(q_yes/b) + exp(q_no/b))."""
    b = liquidity_param
    return b * _log_sum_exp(yes_shares / b, no_shares / b)


def quote(
    yes_shares: float,
    no_shares: float,
    liquidity_param: float = DEFAULT_LIQUIDITY_PARAM,
) -> Quote:
    """Current YES/NO prices for the given outstanding shares."""
    _check_non_negative("yes_shares", yes_shares)
    _check_non_negative("no_shares", no_shares)
    _check_liquidity(liquidity_param)

    # No trades yet: unbiased market
    if yes_shares == 0 and no_shares == 0:
        return Quote(yes_price=0.5, no_price=0.5)

    x = yes_shares / liquidity_param
    y = no_shares / liquidity_param
    m = max(x, y)
    exp_yes = math.exp(x - m)
    exp_no = math.exp(y - m)
    total = exp_yes + exp_no

    return Quote(yes_price=_clamp(exp_yes / total), no_price=_clamp(exp_no / total))


def quote_supply(supply: ShareSupply) -> Quote:
    return quote(supply.yes_shares, supply.no_shares, supply.liquidity_param)


def cost_to_buy(
    yes_shares: float,
    no_shares: float,
    amount: float,
    buy_yes: bool,
    liquidity_param: float = DEFAULT_LIQUIDITY_PARAM,
) -> float:
    """Cost of buying ``amount`` YES (or NO) shares, in collateral units.

    Floored at 0: rounding noise never yields a negative cost.
    """
    _check_non_negative("yes_shares", yes_shares)
    _check_non_negative("no_shares", no_shares)
    _check_non_negative("amount", amount)
    _check_liquidity(liquidity_param)

    if amount == 0:
        return 0.0

    new_yes = yes_shares + amount if buy_yes else yes_shares
    new_no = no_shares if buy_yes else no_shares + amount

    current = cost_function(yes_shares, no_shares, liquidity_param)
    after = cost_function(new_yes, new_no, liquidity_param)
    return max(0.0, after - current)


def payout(shares: float, won: bool) -> float:
    """Resolution payout: one unit of collateral per winning share."""
    _check_non_negative("shares", shares)
    return shares if won else 0.0
