"""Display formatting for coverage percentages and counts.

Every number that reaches the rendered comment goes through this module.
Percentages are rounded half away from zero to a single decimal place
using the shortest decimal representation of the float, so ``-1.15``
becomes ``"-1.2"`` even though its binary value sits just above -1.15.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import math

from covdiff.exceptions import InvalidNumberError


ONE_PLACE = Decimal("0.1")


def _as_decimal(value: float) -> Decimal:
    return Decimal(repr(value) if isinstance(value, float) else value)


def percent_delta(current: float, base: float) -> float:
    """Return ``current - base`` computed on the decimal form of each float.

    Istanbul writes percentages with two decimals, so ``80.1 - 80.3`` must
    come out as exactly ``-0.2`` for threshold checks.
    """
    return float(_as_decimal(current) - _as_decimal(base))


def round_decimal(value: float) -> Decimal:
    """Round ``value`` to one decimal place, half away from zero.

    Raises:
        InvalidNumberError: If ``value`` is NaN, infinite or too large to
            quantize.
    """
    if isinstance(value, bool) or not isinstance(value, int | float | Decimal):
        raise InvalidNumberError(f"Expected a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InvalidNumberError(f"Cannot format non-finite value: {value}")

    try:
        rounded = _as_decimal(value).quantize(ONE_PLACE, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidNumberError(f"Cannot format value: {value}") from e
    if rounded.is_zero():
        return Decimal("0.0")
    return rounded


def decimal_to_string(value: float) -> str:
    """Format a percentage for display: ``1.151 -> "1.2"``, ``1 -> "1"``."""
    text = f"{round_decimal(value):f}"
    if text.endswith(".0"):
        text = text[:-2]
    return text


def format_integer(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidNumberError(f"Expected an integer, got {type(value).__name__}")
    return f"{value:,}"


def is_zero_after_rounding(value: float) -> bool:
    return round_decimal(value).is_zero()
