"""
Money conversion at the I/O boundary.

Every amount inside the engine is an integer number of minor units
(cents, centavos). Decimal major-unit values from imports are
converted exactly once, here.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ledger_reconciler.errors import ValidationError

MINOR_UNITS_PER_MAJOR = 100


def to_minor_units(value) -> int:
    """
    Convert a major-unit amount (e.g. 6180.50) to minor units (618050).

    Floats go through str() so 0.1 + 0.2 style noise never leaks into
    the integer result. Booleans and non-numeric strings are rejected.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"invalid amount: {value!r}")
    try:
        amount = Decimal(str(value).replace(",", ""))
    except InvalidOperation:
        raise ValidationError(f"invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"invalid amount: {value!r}")
    minor = (amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)


def require_minor_units(value) -> int:
    """Accept only values that already are integer minor units."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"amount must be integer minor units, got {value!r}")
    return value


def from_minor_units(amount: int) -> Decimal:
    return Decimal(amount) / MINOR_UNITS_PER_MAJOR


def format_minor_units(amount: int) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{abs(amount) // 100:,}.{abs(amount) % 100:02d}"
