"""Tests for pm_common.units."""

import pytest

from src.pm_common.errors import InvalidArgumentError
from src.pm_common.units import format_balance, format_balance_with_symbol, to_base_units


class TestToBaseUnits:
    def test_whole_amount(self) -> None:
        assert to_base_units("20", 6) == 20_000_000

    def test_fraction(self) -> None:
        assert to_base_units("1.5") == 1_500_000_000_000_000_000

    def test_zero(self) -> None:
        assert to_base_units("0", 6) == 0

    def test_too_many_decimals(self) -> None:
        with pytest.raises(InvalidArgumentError):
            to_base_units("0.0000001", 6)

    @pytest.mark.parametrize("raw", ["abc", "-1", "NaN", "Infinity"])
    def test_rejects_bad_input(self, raw: str) -> None:
        with pytest.raises(InvalidArgumentError):
            to_base_units(raw)


class TestFormat:
    def test_format_balance(self) -> None:
        assert format_balance(1_234_500_000_000_000_000) == "1.2345"

    def test_six_decimals(self) -> None:
        assert format_balance(20_000_000, decimals=6, places=2) == "20.00"

    def test_with_symbol(self) -> None:
        assert format_balance_with_symbol(20_000_000, "USDC", 6, 2) == "20.00 USDC"
