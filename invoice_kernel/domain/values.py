"""
Values -- lenient parsing and rounding of money and quantities.

Responsibility:
    Convert the free-text fields an operator types (amounts, quantities)
    into Decimal / int values, and round money at the display boundary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every engine. No outward dependencies.

Invariants enforced:
    - Money is Decimal, never float. Floats arriving from a JSON feed are
      converted through ``str`` so their shortest repr is preserved.
    - Rounding happens only where a caller asks for it (``round_money``);
      accumulation helpers never round intermediate values.
    - NaN and infinities are never accepted as amounts.

Failure modes:
    - Parsing never raises: unparseable input yields ``None`` and the caller
      decides whether that is "zero" or a reported error.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0")
MONEY_PLACES = 2

# Leading-integer parse: "3", " 4 ", "5 units", "6.9" -> 3, 4, 5, 6
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_amount(value: object) -> Decimal | None:
    """Parse an amount field into a Decimal.

    Accepts Decimal, int, float and str. Returns None for None, empty or
    whitespace-only text, non-numeric text, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        value = str(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def amount_or_zero(value: object) -> Decimal:
    """Parse an amount, treating unset or unparseable input as zero."""
    parsed = parse_amount(value)
    return ZERO if parsed is None else parsed


def sum_amounts(values: Iterable[object]) -> Decimal:
    """Sum amounts without intermediate rounding (unparseable counts as 0)."""
    total = ZERO
    for value in values:
        total += amount_or_zero(value)
    return total


def parse_quantity(value: object) -> int | None:
    """Parse a quantity field by its leading integer.

    Returns None when there is no leading integer at all.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        return int(value) if value.is_finite() else None
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def round_money(value: Decimal, places: int = MONEY_PLACES) -> Decimal:
    """Round a monetary value half-up to ``places`` decimal places."""
    exponent = Decimal(1).scaleb(-places)
    rounded = value.quantize(exponent, rounding=ROUND_HALF_UP)
    # No "-0.00" in output
    return abs(rounded) if rounded.is_zero() else rounded


def format_money(
    value: Decimal,
    symbol: str = "$",
    places: int = MONEY_PLACES,
) -> str:
    """Render a monetary value for messages, e.g. ``$60.00``."""
    rounded = round_money(value, places)
    if rounded < 0:
        return f"-{symbol}{-rounded}"
    return f"{symbol}{rounded}"
