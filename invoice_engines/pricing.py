"""
Pricing Calculator.

Pure functions with deterministic behavior. No I/O.

Folds resolved order lines and externally supplied charges (tax, fees,
treated as one opaque amount) into a subtotal and grand total.
Accumulation is exact Decimal arithmetic; rounding to display precision
happens only through ``PriceSummary.rounded()``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from invoice_kernel.domain.order import ItemKind
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.domain.values import ZERO, parse_amount, round_money
from invoice_kernel.logging_config import get_logger
from invoice_engines.catalog import OrderLine
from invoice_engines.tracer import traced_engine

logger = get_logger("engines.pricing")


@dataclass(frozen=True)
class PriceSummary:
    """
    Order totals.

    Attributes:
        product_total: Sum of product line totals
        service_total: Sum of service line totals
        charges: Externally computed charges (tax, fees)
    """

    product_total: Decimal
    service_total: Decimal
    charges: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.charges < 0:
            raise ValueError("charges must be non-negative")

    @property
    def subtotal(self) -> Decimal:
        return self.product_total + self.service_total

    @property
    def grand_total(self) -> Decimal:
        return self.subtotal + self.charges

    def rounded(self, places: int = 2) -> PriceSummary:
        """Copy rounded to display precision."""
        return PriceSummary(
            product_total=round_money(self.product_total, places),
            service_total=round_money(self.service_total, places),
            charges=round_money(self.charges, places),
        )


def normalize_charges(charges: object) -> Decimal:
    """Charges default to zero when absent or unparseable."""
    parsed = parse_amount(charges)
    return ZERO if parsed is None else parsed


@traced_engine("pricing", "1.0", fingerprint_fields=("lines", "charges"))
def price_lines(
    lines: Iterable[OrderLine],
    charges: Decimal | str | int | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PriceSummary:
    """
    Calculate subtotal and grand total for resolved lines.

    Pure function. Placeholder lines (unknown items) contribute nothing.

    Args:
        lines: Resolved product and service lines
        charges: Opaque non-negative charges, 0 when absent
        settings: Engine settings (display precision for logging)

    Returns:
        PriceSummary with exact, unrounded totals

    Raises:
        ValueError: If charges are negative
    """
    product_total = ZERO
    service_total = ZERO
    line_count = 0

    for line in lines:
        line_count += 1
        if line.kind is ItemKind.SERVICE:
            service_total += line.line_total
        else:
            product_total += line.line_total

    summary = PriceSummary(
        product_total=product_total,
        service_total=service_total,
        charges=normalize_charges(charges),
    )

    logger.debug("order_priced", extra={
        "line_count": line_count,
        "subtotal": str(round_money(summary.subtotal, settings.money_places)),
        "charges": str(summary.charges),
        "grand_total": str(round_money(summary.grand_total, settings.money_places)),
    })
    return summary
