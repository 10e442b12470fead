"""Tests for Decimal conversion helpers and the deterministic clock."""

from datetime import datetime, timedelta, timezone
from decimal import ROUND_HALF_EVEN, Decimal

import pytest

from ops_kernel.domain.clock import DeterministicClock
from ops_kernel.domain.values import (
    quantize,
    require_non_negative_amount,
    require_positive_amount,
    require_positive_quantity,
    to_decimal,
)
from ops_kernel.exceptions import InvalidAmountError, InvalidQuantityError


class TestToDecimal:

    @pytest.mark.parametrize("value, expected", [
        (Decimal("1.50"), Decimal("1.50")),
        (10, Decimal("10")),
        ("12.345", Decimal("12.345")),
        (0.1, Decimal("0.1")),
    ])
    def test_converts(self, value, expected):
        assert to_decimal(value) == expected

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal("0.3")

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", float("inf"), True])
    def test_rejects_non_finite_and_garbage(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)


class TestRequireHelpers:

    def test_positive_amount(self):
        assert require_positive_amount("5") == Decimal("5")

    @pytest.mark.parametrize("value", [0, "-1", "x"])
    def test_positive_amount_rejects(self, value):
        with pytest.raises(InvalidAmountError) as exc_info:
            require_positive_amount(value)

        assert exc_info.value.code == "INVALID_AMOUNT"

    def test_non_negative_amount_accepts_zero(self):
        assert require_non_negative_amount(0) == Decimal("0")

    def test_non_negative_amount_rejects_negative(self):
        with pytest.raises(InvalidAmountError):
            require_non_negative_amount("-0.01")

    def test_positive_quantity(self):
        assert require_positive_quantity("2.5") == Decimal("2.5")

    @pytest.mark.parametrize("value", [0, -3, "many"])
    def test_positive_quantity_rejects(self, value):
        with pytest.raises(InvalidQuantityError):
            require_positive_quantity(value)


class TestQuantize:

    def test_half_up_by_default(self):
        assert quantize(Decimal("0.125"), 2) == Decimal("0.13")
        assert quantize(Decimal("2.5"), 0) == Decimal("3")

    def test_explicit_rounding(self):
        assert quantize(Decimal("2.5"), 0, ROUND_HALF_EVEN) == Decimal("2")


class TestDeterministicClock:

    def test_fixed_until_advanced(self):
        clock = DeterministicClock()

        assert clock.now() == clock.now()
        assert clock.now() == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_advance_and_tick(self):
        clock = DeterministicClock()
        start = clock.now()

        clock.advance(30)
        assert clock.now() == start + timedelta(seconds=30)
        assert clock.tick() == start + timedelta(seconds=31)

    def test_set_time_resets_offset(self):
        clock = DeterministicClock()
        clock.advance(100)
        target = datetime(2024, 6, 1, tzinfo=timezone.utc)

        clock.set_time(target)

        assert clock.now() == target
