"""
Module: invoice_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines. This is the canonical import surface for
    ``invoice_services`` and for callers embedding the core directly.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import invoice_kernel (and sibling engine modules).
    MUST NOT import invoice_services or invoice_config.

Invariants enforced:
    - Purity: engines never generate ids, read clocks or touch storage.
      Row ids are passed in by the caller.
    - Decimal-only arithmetic; rounding only at display boundaries.
    - Determinism: identical inputs always produce identical outputs.

Data flow:
    catalog.resolve_lines -> pricing.price_lines -> payments.* ->
    validation.validate_submission -> submission.build_order_payload

Usage:
    from invoice_engines import reconcile, resolve_lines

    lines = resolve_lines(selected, quantities, catalog, original)
    view = reconcile(lines, current_payments, previous_payments, charges)
    if view.is_valid:
        ...
"""

from invoice_kernel.logging_config import get_logger

logger = get_logger("engines")

from invoice_engines.catalog import (
    OrderLine,
    build_catalog,
    effective_quantity,
    index_catalog,
    max_allowed_quantity,
    original_quantities_from_items,
    resolve_lines,
    step_quantity,
)
from invoice_engines.payments import (
    AmountChange,
    add_payment_row,
    available_for_entry,
    compute_remaining,
    is_order_settled,
    new_payment_entry,
    on_amount_change,
    on_status_change,
    remove_payment_row,
    replace_payment,
    sum_payments,
    update_payment_field,
)
from invoice_engines.pricing import PriceSummary, price_lines
from invoice_engines.reconciliation import ReconciliationResult, reconcile
from invoice_engines.submission import (
    build_order_payload,
    items_changed,
    payload_amounts,
)
from invoice_engines.tracer import traced_engine
from invoice_engines.validation import (
    validate_customer,
    validate_item_presence,
    validate_lines,
    validate_payments,
    validate_submission,
)
from invoice_engines.validation_types import (
    PAYMENT_TOTAL_FIELD,
    PRODUCTS_FIELD,
    ErrorKind,
    FieldError,
    ValidationResult,
    payment_amount_field,
    payment_status_field,
)

__all__ = [
    # Catalog
    "OrderLine",
    "build_catalog",
    "effective_quantity",
    "index_catalog",
    "max_allowed_quantity",
    "original_quantities_from_items",
    "resolve_lines",
    "step_quantity",
    # Pricing
    "PriceSummary",
    "price_lines",
    # Payments
    "AmountChange",
    "add_payment_row",
    "available_for_entry",
    "compute_remaining",
    "is_order_settled",
    "new_payment_entry",
    "on_amount_change",
    "on_status_change",
    "remove_payment_row",
    "replace_payment",
    "sum_payments",
    "update_payment_field",
    # Validation
    "ErrorKind",
    "FieldError",
    "ValidationResult",
    "PAYMENT_TOTAL_FIELD",
    "PRODUCTS_FIELD",
    "payment_amount_field",
    "payment_status_field",
    "validate_customer",
    "validate_item_presence",
    "validate_lines",
    "validate_payments",
    "validate_submission",
    # Reconciliation view
    "ReconciliationResult",
    "reconcile",
    # Submission
    "build_order_payload",
    "items_changed",
    "payload_amounts",
    # Tracing
    "traced_engine",
]
