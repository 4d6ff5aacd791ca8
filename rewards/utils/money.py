"""Fixed-point helpers for coin amounts.

All amounts are ``Decimal`` with two fractional digits. Payouts are
rounded down so the house never pays out a fraction it did not earn.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

from rewards.utils.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def _parse(value: Decimal | int | float | str) -> Decimal:
    # Floats go through str so 0.1 stays 0.1
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValidationError(f"Invalid amount: {value!r}") from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return amount


def to_amount(value: Decimal | int | float | str) -> Decimal:
    """Coerce ``value`` to a two-digit Decimal (half-up)."""
    return _parse(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_down(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_DOWN)


def require_positive(value: Decimal | int | float | str, field: str = "amount") -> Decimal:
    """Coerce a caller-supplied amount and reject zero, negatives and sub-cent digits.

    ``"10.005"`` is refused rather than silently rounded; trailing zeros
    such as ``"0.5000"`` are fine.
    """
    raw = _parse(value)
    amount = raw.quantize(CENT, rounding=ROUND_HALF_UP)
    if raw != amount:
        raise ValidationError(
            f"{field.capitalize()} cannot have more than two decimal places",
            details={field: str(raw)},
        )
    if amount <= 0:
        raise ValidationError(
            f"{field.capitalize()} must be positive",
            details={field: str(amount)},
        )
    return amount
