"""Tests for monetary coercion and display rounding."""

from decimal import ROUND_HALF_EVEN, Decimal

import pytest

from cashflow_kernel.db.types import round_money, to_money
from cashflow_kernel.exceptions import InvalidAmountError
from cashflow_kernel.services.base import positive_amount


class TestToMoney:
    def test_accepts_decimal_int_and_string(self):
        assert to_money(Decimal("1.50")) == Decimal("1.50")
        assert to_money(100) == Decimal("100")
        assert to_money(" 2500.75 ") == Decimal("2500.75")

    def test_rejects_float(self):
        with pytest.raises(TypeError):
            to_money(0.1)

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            to_money(True)

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", ""])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError):
            to_money(value)


class TestRoundMoney:
    def test_half_up_by_default(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")

    def test_custom_places_and_mode(self):
        assert round_money(Decimal("2.345"), 2, ROUND_HALF_EVEN) == Decimal("2.34")
        assert round_money(Decimal("1999.5"), 0) == Decimal("2000")


class TestPositiveAmount:
    def test_positive(self):
        assert positive_amount("10000") == Decimal("10000")

    @pytest.mark.parametrize("value", [0, "-5", "0.00"])
    def test_zero_and_negative(self, value):
        with pytest.raises(InvalidAmountError) as exc_info:
            positive_amount(value)
        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_float_reported_as_invalid_amount(self):
        with pytest.raises(InvalidAmountError):
            positive_amount(12.5)
