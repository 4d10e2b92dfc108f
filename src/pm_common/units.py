"""Token amount conversions.

On-chain and on-wire amounts are integers in the token's base units
(wei for 18-decimal tokens). Only display and CLI input go through Decimal.
"""

from decimal import Decimal, InvalidOperation

from src.pm_common.errors import InvalidArgumentError


def to_base_units(amount: str, decimals: int = 18) -> int:
    """Parse a human amount ("1.5") into base units: 1.5 -> 1500000000000000000."""
    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise InvalidArgumentError(f"not a number: {amount!r}") from None
    if not value.is_finite() or value < 0:
        raise InvalidArgumentError(f"amount must be a non-negative number, got {amount!r}")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidArgumentError(f"{amount!r} has more than {decimals} decimal places")
    return int(scaled)


def format_balance(base_units: int, decimals: int = 18, places: int = 4) -> str:
    """Format base units for display: 1234500000000000000 -> '1.2345'."""
    value = Decimal(base_units).scaleb(-decimals)
    return f"{value:.{places}f}"


def format_balance_with_symbol(
    base_units: int, symbol: str = "ETH", decimals: int = 18, places: int = 4
) -> str:
    return f"{format_balance(base_units, decimals, places)} {symbol}"
