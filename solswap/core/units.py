"""Conversion between human decimal amounts and integer smallest units.

Both directions run on ``decimal.Decimal`` with a wide local context, so
there is no binary floating-point drift. Smallest-unit amounts are exact up
to 120 integer digits; larger amounts convert to ``0``.

Rounding rule for ``to_smallest_unit``: nearest integer, ties away from zero
(``ROUND_HALF_UP`` on a positive value). ``"0.0000000005"`` SOL (9 decimals)
becomes 1 lamport, ``"0.0000000004"`` becomes 0.

Both functions are total: anything that is not a finite positive number, or
whose exponent overflows the decimal context, maps to ``0`` / ``"0"`` instead
of raising, since they sit on the live typing path.
"""

from decimal import (
    ROUND_HALF_UP,
    Decimal,
    DecimalException,
    InvalidOperation,
    localcontext,
)

_PRECISION = 120


def _parse(value: object) -> Decimal | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def to_smallest_unit(amount_text: str | int | float, decimals: int) -> int:
    """Convert a human amount to an integer count of smallest units.

    Args:
        amount_text: Decimal text as typed, e.g. "1.5"
        decimals: Token decimal count

    Returns:
        Smallest-unit integer, 0 for non-numeric or non-positive input
    """
    if decimals < 0:
        return 0
    value = _parse(amount_text)
    if value is None or value <= 0:
        return 0
    # More integer digits than the context can hold exactly
    if value.adjusted() + decimals >= _PRECISION:
        return 0
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            scaled = value.scaleb(decimals)
            return int(scaled.to_integral_value(rounding=ROUND_HALF_UP))
    except DecimalException:
        return 0


def from_smallest_unit(amount: int | str, decimals: int) -> str:
    """Convert a smallest-unit amount back to a plain decimal string.

    Trailing zeros are stripped and scientific notation is never used:
    ``from_smallest_unit(2_800_000_000, 9) == "2.8"``.
    """
    if decimals < 0:
        return "0"
    value = _parse(amount)
    if value is None or value <= 0:
        return "0"
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            return format_decimal(value.scaleb(-decimals))
    except DecimalException:
        return "0"


def format_decimal(value: Decimal) -> str:
    """Render a Decimal in plain notation without trailing zeros."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        text = format(value.normalize(), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def round_display(amount_text: str, places: int = 6) -> str:
    """Round a decimal string for display, half-up at ``places`` digits."""
    value = _parse(amount_text)
    if value is None:
        return "0"
    try:
        with localcontext() as ctx:
            ctx.prec = _PRECISION
            quantized = value.quantize(
                Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP
            )
        return format_decimal(quantized)
    except DecimalException:
        return "0"


def ratio(numerator_text: str, denominator_text: str) -> str | None:
    """Divide two decimal strings; None when either side is not positive."""
    numerator = _parse(numerator_text)
    denominator = _parse(denominator_text)
    if numerator is None or denominator is None or denominator <= 0 or numerator < 0:
        return None
    try:
        with localcontext() as ctx:
            ctx.prec = 28
            return format_decimal(numerator / denominator)
    except DecimalException:
        return None
