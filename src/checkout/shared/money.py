"""Money helpers shared by the calculator, settlement and statistics.

Amounts are stored as floats on aggregates and converted to ``Decimal`` for
arithmetic. Rounding happens once, to the currency's smallest unit.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal

from checkout.config import get_currency_exponent

ZERO = Decimal("0")


def to_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def minor_unit(exponent: int | None = None) -> Decimal:
    exponent = get_currency_exponent() if exponent is None else exponent
    return Decimal(1).scaleb(-exponent)


def round_money(value, exponent: int | None = None) -> Decimal:
    """Round half away from zero to the currency's smallest unit."""
    return to_decimal(value).quantize(minor_unit(exponent), rounding=ROUND_HALF_UP)


def truncate_money(value, exponent: int | None = None) -> Decimal:
    """Drop any fraction below the currency's smallest unit."""
    return to_decimal(value).quantize(minor_unit(exponent), rounding=ROUND_DOWN)
