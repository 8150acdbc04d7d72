"""Tests for utils/money.py - display rounding."""

from decimal import Decimal

import pytest

from utils.money import round_currency


class TestRoundCurrency:

    @pytest.mark.parametrize("amount,expected", [
        (0.125, "0.12"),
        (0.135, "0.14"),
        (2.5, "2.50"),
        (100, "100.00"),
        (Decimal("1.005"), "1.00"),
    ])
    def test_half_even(self, amount, expected):
        assert round_currency(amount) == Decimal(expected)
