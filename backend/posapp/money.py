"""
Money helpers.

All amounts are stored and computed as integer cents. Conversion to and from
two-decimal numbers happens only at the HTTP boundary (request parsing and
to_dict serialization).
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# 99,999,999.99, the largest NUMERIC(10, 2) value
MAX_AMOUNT_CENTS = 9_999_999_999


class MoneyFormatError(ValueError):
    """Raised when a value cannot be represented as an exact cent amount."""


def to_cents(value) -> int:
    """
    Convert a two-decimal amount (int, float, str or Decimal) to integer cents.

    Floats go through str() so 15.99 becomes Decimal("15.99"), not the
    binary approximation. More than two fractional digits is rejected rather
    than silently rounded.
    """
    if isinstance(value, bool) or value is None:
        raise MoneyFormatError("amount must be a number")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError, ValueError):
        raise MoneyFormatError("amount must be a number")
    if not amount.is_finite():
        raise MoneyFormatError("amount must be a finite number")
    # Beyond this the quantize below overflows the context precision
    if amount.adjusted() > 15:
        raise MoneyFormatError("amount is too large")
    try:
        exact = amount == amount.quantize(CENT)
    except InvalidOperation:
        raise MoneyFormatError("amount must be a number")
    if not exact:
        raise MoneyFormatError("amount must have at most two decimal places")
    return int(amount * 100)


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def cents_to_number(cents: int | None) -> float | None:
    """JSON-facing representation; float(Decimal('44.97')) serializes as 44.97."""
    amount = from_cents(cents)
    return float(amount) if amount is not None else None


def apply_rate_bps(amount_cents: int, rate_bps: int) -> int:
    """amount * rate / 10000, rounded half-up to the cent."""
    if not rate_bps or amount_cents <= 0:
        return 0
    exact = Decimal(amount_cents) * Decimal(rate_bps) / Decimal(10_000)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))
