from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value):
    """
    Coerce user/ORM input into a Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    Raises InvalidOperation for values that are not finite numbers (NaN and
    Infinity included).
    """
    if isinstance(value, bool) or value is None:
        raise InvalidOperation(f"Not a monetary amount: {value!r}")
    d = value if isinstance(value, Decimal) else Decimal(str(value))
    if not d.is_finite():
        raise InvalidOperation(f"Not a finite amount: {value!r}")
    return d


def round2(value):
    """Round half-up to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def floor2(value):
    """Truncate to cents (toward zero; callers only pass non-negative values)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)
