"""Money arithmetic helpers.

Amounts are persisted as floats but every computation goes through
``Decimal`` and is rounded half-up to cents.
"""

from decimal import ROUND_HALF_UP, Decimal

_CENTS = Decimal("0.01")


def _dec(value) -> Decimal:
    return Decimal(str(value if value is not None else 0))


def to_money(value) -> float:
    return float(_dec(value).quantize(_CENTS, rounding=ROUND_HALF_UP))


def percentage_of(amount, percentage) -> float:
    """Return ``amount × percentage / 100`` rounded to cents."""
    return to_money(_dec(amount) * _dec(percentage) / Decimal(100))


def subtract(amount, other) -> float:
    return to_money(_dec(amount) - _dec(other))


def multiply(amount, quantity) -> float:
    return to_money(_dec(amount) * _dec(quantity))


def total(amounts) -> float:
    return to_money(sum((_dec(a) for a in amounts), Decimal(0)))
