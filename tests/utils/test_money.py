"""Tests for coin amount helpers."""

from decimal import Decimal

import pytest

from rewards.utils.errors import ValidationError
from rewards.utils.money import require_positive, round_down, to_amount


class TestToAmount:
    def test_quantizes_to_cents(self):
        assert to_amount("10") == Decimal("10.00")
        assert str(to_amount(3)) == "3.00"

    def test_half_up(self):
        assert to_amount("1.005") == Decimal("1.01")
        assert to_amount("1.004") == Decimal("1.00")

    def test_float_goes_through_str(self):
        """0.1 must not turn into 0.1000000000000000055..."""
        assert to_amount(0.1) == Decimal("0.10")

    @pytest.mark.parametrize("value", ["abc", "", None, "NaN", "Infinity"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            to_amount(value)


class TestRoundDown:
    def test_truncates(self):
        assert round_down(Decimal("18.999")) == Decimal("18.99")
        assert round_down(Decimal("0.009")) == Decimal("0.00")


class TestRequirePositive:
    def test_accepts_positive(self):
        assert require_positive("0.01") == Decimal("0.01")

    def test_rejects_zero_and_negative(self):
        with pytest.raises(ValidationError) as exc_info:
            require_positive(0, field="bet")

        assert exc_info.value.message == "Bet must be positive"
        assert exc_info.value.details == {"bet": "0.00"}

        with pytest.raises(ValidationError):
            require_positive("-5")

    def test_rejects_sub_cent_digits(self):
        with pytest.raises(ValidationError) as exc_info:
            require_positive("10.005")

        assert exc_info.value.message == "Amount cannot have more than two decimal places"
        assert exc_info.value.details == {"amount": "10.005"}

        with pytest.raises(ValidationError):
            require_positive("0.001", field="bet")
        with pytest.raises(ValidationError):
            require_positive(10.005)

    def test_trailing_zeros_are_not_extra_digits(self):
        assert require_positive("0.5000") == Decimal("0.50")
        assert require_positive(Decimal("10.00") * Decimal("0.05")) == Decimal("0.50")
