from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    if val is None or val == "":
        return ZERO
    return Decimal(str(val))


def q2(amount) -> Decimal:
    """Quantize to cents, half up."""
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def quantize_for(amount, places: int) -> Decimal:
    return d(amount).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def pct_of(amount, percent) -> Decimal:
    """`percent` is expressed in percent (2.9 means 2.9%)."""
    return d(amount) * d(percent) / HUNDRED
