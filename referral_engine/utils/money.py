# referral_engine/utils/money.py
"""
Decimal helpers for balances and payouts.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from referral_engine.config.levels import CENT

ZERO = Decimal("0")


def toDecimal(value) -> Decimal:
    """Coerce ints, floats, strings and None to Decimal; garbage becomes 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def percentOf(amount, rate) -> Decimal:
    """amount * rate / 100 without rounding."""
    return toDecimal(amount) * toDecimal(rate) / Decimal("100")


def roundMoney(value) -> Decimal:
    """Round to cents, half up; used at the payout boundary only."""
    return toDecimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
