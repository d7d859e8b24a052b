"""
Reconciliation view -- the full computed state of an order being edited.

Pure function with deterministic behavior. No I/O.

``reconcile`` chains the three engines (prices the resolved lines, sums
previous and current payments, derives the remaining balance) and
attaches the submission verdict. The result is a view recomputed on every
input event; it is never persisted.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from invoice_kernel.domain.order import CustomerDetails, PaymentEntry
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.domain.values import ZERO, round_money
from invoice_kernel.logging_config import get_logger
from invoice_engines.catalog import OrderLine
from invoice_engines.payments import sum_payments
from invoice_engines.pricing import PriceSummary, price_lines
from invoice_engines.validation import validate_submission
from invoice_engines.validation_types import ValidationResult

logger = get_logger("engines.reconciliation")


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Computed totals and verdict for one order state.

    Invariant: remaining = grand_total - previous_total - current_total.
    """

    lines: tuple[OrderLine, ...]
    pricing: PriceSummary
    previous_total: Decimal
    current_total: Decimal
    validation: ValidationResult

    def __post_init__(self) -> None:
        if self.previous_total < 0 or self.current_total < 0:
            logger.warning("reconciliation_negative_payment_total", extra={
                "previous_total": str(self.previous_total),
                "current_total": str(self.current_total),
            })

    @property
    def subtotal(self) -> Decimal:
        return self.pricing.subtotal

    @property
    def grand_total(self) -> Decimal:
        return self.pricing.grand_total

    @property
    def remaining(self) -> Decimal:
        return self.grand_total - self.previous_total - self.current_total

    @property
    def is_valid(self) -> bool:
        return self.validation.is_valid

    @property
    def is_fully_paid(self) -> bool:
        return self.remaining <= ZERO

    def display_totals(self, places: int = 2) -> dict[str, Decimal]:
        """Totals rounded for display."""
        return {
            "subtotal": round_money(self.subtotal, places),
            "charges": round_money(self.pricing.charges, places),
            "grand_total": round_money(self.grand_total, places),
            "previous_total": round_money(self.previous_total, places),
            "current_total": round_money(self.current_total, places),
            "remaining": round_money(self.remaining, places),
        }


def reconcile(
    lines: Sequence[OrderLine],
    current_payments: Sequence[PaymentEntry],
    previous_payments: Sequence[PaymentEntry] = (),
    charges: Decimal | str | int | None = None,
    customer: CustomerDetails | None = None,
    require_items: bool | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ReconciliationResult:
    """
    Compute the complete reconciliation view for an order state.

    Pure function.

    Args:
        lines: Resolved product and service lines
        current_payments: Rows being edited
        previous_payments: Persisted payments
        charges: Opaque charges added to the subtotal
        customer: Contact details, validated when given
        require_items: Override ``settings.require_items``
        settings: Engine settings

    Returns:
        ReconciliationResult
    """
    pricing = price_lines(lines, charges, settings)
    validation = validate_submission(
        lines,
        current_payments,
        pricing.grand_total,
        previous_payments,
        customer=customer,
        require_items=require_items,
        settings=settings,
    )
    return ReconciliationResult(
        lines=tuple(lines),
        pricing=pricing,
        previous_total=sum_payments(previous_payments),
        current_total=sum_payments(current_payments),
        validation=validation,
    )
