"""Tests for pm_pricing.domain.lmsr."""

import math

import pytest

from src.pm_common.errors import InvalidArgumentError
from src.pm_pricing.domain import lmsr
from src.pm_pricing.domain.models import ShareSupply


class TestQuote:
    def test_empty_market_is_even(self) -> None:
        q = lmsr.quote(0, 0)
        assert q.yes_price == 0.5
        assert q.no_price == 0.5

    def test_equal_supply_is_even(self) -> None:
        q = lmsr.quote(250, 250, 100)
        assert q.yes_price == pytest.approx(0.5)
        assert q.no_price == pytest.approx(0.5)

    def test_known_value(self) -> None:
        # e / (e + 1)
        q = lmsr.quote(100, 0, 100)
        assert q.yes_price == pytest.approx(0.7310586, rel=1e-6)
        assert q.no_price == pytest.approx(0.2689414, rel=1e-6)

    def test_prices_sum_to_one_inside_clamp_range(self) -> None:
        q = lmsr.quote(37, 12, 50)
        assert q.yes_price + q.no_price == pytest.approx(1.0)

    def test_symmetry(self) -> None:
        a = lmsr.quote(80, 20, 100)
        b = lmsr.quote(20, 80, 100)
        assert a.yes_price == pytest.approx(b.no_price)
        assert a.no_price == pytest.approx(b.yes_price)

    def test_extreme_supply_is_clamped_independently(self) -> None:
        q = lmsr.quote(1_000_000, 0, 100)
        assert q.yes_price == lmsr.MAX_PRICE
        assert q.no_price == lmsr.MIN_PRICE
        # not renormalised
        assert q.yes_price + q.no_price == pytest.approx(1.0)

    def test_huge_ratio_stays_finite(self) -> None:
        q = lmsr.quote(1e9, 1e9 - 5, 0.001)
        assert math.isfinite(q.yes_price)
        assert math.isfinite(q.no_price)
        assert lmsr.MIN_PRICE <= q.yes_price <= lmsr.MAX_PRICE

    def test_quote_supply(self) -> None:
        supply = ShareSupply(yes_shares=100, no_shares=0, liquidity_param=100)
        assert lmsr.quote_supply(supply) == lmsr.quote(100, 0, 100)

    @pytest.mark.parametrize(
        "yes,no,b",
        [(-1, 0, 100), (0, -1, 100), (0, 0, 0), (0, 0, -5), (math.nan, 0, 100), (0, 0, math.inf)],
    )
    def test_invalid_inputs(self, yes: float, no: float, b: float) -> None:
        with pytest.raises(InvalidArgumentError):
            lmsr.quote(yes, no, b)


class TestCostToBuy:
    def test_first_purchase_matches_potential_difference(self) -> None:
        # 100 * ln(e^0.1 + 1) - 100 * ln 2
        cost = lmsr.cost_to_buy(0, 0, 10, True, 100)
        assert cost == pytest.approx(5.124948, rel=1e-5)

    def test_zero_amount_costs_nothing(self) -> None:
        assert lmsr.cost_to_buy(40, 10, 0, True, 100) == 0.0

    def test_never_negative(self) -> None:
        assert lmsr.cost_to_buy(0, 1e6, 1e-12, True, 100) >= 0.0

    def test_yes_no_symmetry(self) -> None:
        assert lmsr.cost_to_buy(30, 70, 5, True) == pytest.approx(lmsr.cost_to_buy(70, 30, 5, False))

    def test_cost_bounded_by_amount(self) -> None:
        cost = lmsr.cost_to_buy(0, 0, 50, True, 100)
        assert 0 < cost < 50

    def test_buying_raises_price(self) -> None:
        before = lmsr.quote(10, 10, 100)
        after = lmsr.quote(30, 10, 100)
        assert after.yes_price > before.yes_price

    def test_yes_price_rises_with_yes_supply_up_to_ceiling(self) -> None:
        prices = [lmsr.quote(yes, 50, 100).yes_price for yes in (0, 10, 25, 50, 100, 200, 300, 460, 1000, 2000)]
        assert all(a <= b for a, b in zip(prices, prices[1:]))
        below_ceiling = [p for p in prices if p < lmsr.MAX_PRICE]
        assert all(a < b for a, b in zip(below_ceiling, below_ceiling[1:]))
        assert len(below_ceiling) == 8
        assert prices[-2:] == [lmsr.MAX_PRICE, lmsr.MAX_PRICE]

    @pytest.mark.parametrize("buy_yes", [True, False])
    def test_cost_increases_with_amount(self, buy_yes: bool) -> None:
        costs = [lmsr.cost_to_buy(20, 30, amount, buy_yes, 100) for amount in (0.5, 1, 5, 10, 50, 100, 500)]
        assert all(a < b for a, b in zip(costs, costs[1:]))

    def test_large_ratio_is_finite(self) -> None:
        cost = lmsr.cost_to_buy(1e6, 0, 10, True, 1)
        assert cost == pytest.approx(10.0)

    def test_negative_amount(self) -> None:
        with pytest.raises(InvalidArgumentError):
            lmsr.cost_to_buy(0, 0, -1, True)


class TestPayout:
    def test_winning_shares_pay_one_each(self) -> None:
        assert lmsr.payout(12.5, True) == 12.5

    def test_losing_shares_pay_nothing(self) -> None:
        assert lmsr.payout(12.5, False) == 0.0

    def test_negative_shares(self) -> None:
        with pytest.raises(InvalidArgumentError):
            lmsr.payout(-1, True)
