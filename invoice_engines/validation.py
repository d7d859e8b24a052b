"""
Submission validator.

Pure functions with deterministic behavior. No I/O.

Runs the submit-time checks over a fully resolved order state and
returns every problem at once as a field-keyed ``ValidationResult``:

1. Every selected line resolves to a catalog item ("Product not found").
2. Every line respects its grandfathered stock ceiling.
   Checks 1-2 stop at the first offending line.
3. At least one product or service line is selected.
4. Every current payment has a status.
5. Current plus previous payments do not exceed the grand total by more
   than the configured tolerance. Empty, non-numeric or negative current
   amounts are reported per row instead of being counted.

Nothing here raises for bad user data and nothing is auto-corrected.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from decimal import Decimal

from invoice_kernel.domain.order import CustomerDetails, PaymentEntry
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.domain.values import ZERO, format_money
from invoice_kernel.logging_config import get_logger
from invoice_engines.catalog import OrderLine
from invoice_engines.payments import sum_payments
from invoice_engines.tracer import traced_engine
from invoice_engines.validation_types import (
    PAYMENT_TOTAL_FIELD,
    PRODUCTS_FIELD,
    ErrorKind,
    FieldError,
    ValidationResult,
    payment_amount_field,
    payment_status_field,
)

logger = get_logger("engines.validation")

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


# ============================================================================
# Individual check groups
# ============================================================================


def validate_item_presence(
    lines: Sequence[OrderLine],
    require_items: bool = True,
) -> list[FieldError]:
    """Check 3: something must be on the order."""
    if lines or not require_items:
        return []
    return [FieldError(
        field=PRODUCTS_FIELD,
        kind=ErrorKind.NO_ITEMS_SELECTED,
        message="Please select at least one product or service item",
    )]


def validate_lines(lines: Sequence[OrderLine]) -> list[FieldError]:
    """Checks 1-2: resolution and stock ceilings, first failure only."""
    for line in lines:
        if not line.is_resolved:
            return [FieldError(
                field=PRODUCTS_FIELD,
                kind=ErrorKind.PRODUCT_NOT_FOUND,
                message=f"Product not found: {line.item_id}",
                details={"item_id": line.item_id},
            )]

        if line.quantity < 1:
            return [FieldError(
                field=PRODUCTS_FIELD,
                kind=ErrorKind.QUANTITY_BELOW_MINIMUM,
                message=f"Quantity for {line.name} must be at least 1",
                details={"item_id": line.item_id, "requested": line.requested},
            )]

        if line.exceeds_stock:
            return [FieldError(
                field=PRODUCTS_FIELD,
                kind=ErrorKind.QUANTITY_EXCEEDS_STOCK,
                message=(
                    f"Quantity for {line.name} exceeds available stock "
                    f"(Max: {line.max_quantity})"
                ),
                details={
                    "item_id": line.item_id,
                    "quantity": line.quantity,
                    "max_quantity": line.max_quantity,
                    "original_quantity": line.original_quantity,
                },
            )]

    return []


def validate_payments(
    current_payments: Sequence[PaymentEntry],
    grand_total: Decimal,
    previous_payments: Sequence[PaymentEntry] = (),
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> list[FieldError]:
    """Checks 4-5: per-row status and amount, then the aggregate total."""
    errors: list[FieldError] = []
    current_total = ZERO

    for i, payment in enumerate(current_payments):
        if payment.status is None:
            errors.append(FieldError(
                field=payment_status_field(i),
                kind=ErrorKind.PAYMENT_STATUS_REQUIRED,
                message=f"Payment status is required for payment #{i + 1}",
                details={"entry_id": payment.entry_id},
            ))

        if not payment.amount.strip():
            errors.append(FieldError(
                field=payment_amount_field(i),
                kind=ErrorKind.PAYMENT_AMOUNT_REQUIRED,
                message=f"Amount is required for payment #{i + 1}",
                details={"entry_id": payment.entry_id},
            ))
            continue
        parsed = payment.parsed_amount
        if parsed is None or parsed < 0:
            errors.append(FieldError(
                field=payment_amount_field(i),
                kind=ErrorKind.PAYMENT_AMOUNT_INVALID,
                message=f"Please enter a valid amount for payment #{i + 1}",
                details={"entry_id": payment.entry_id, "amount": payment.amount},
            ))
        else:
            current_total += parsed

    previous_total = sum_payments(previous_payments)
    total_paid = previous_total + current_total
    if total_paid > grand_total + settings.payment_tolerance:
        symbol, places = settings.currency_symbol, settings.money_places
        errors.append(FieldError(
            field=PAYMENT_TOTAL_FIELD,
            kind=ErrorKind.PAYMENT_TOTAL_EXCEEDED,
            message=(
                f"Total payment ({format_money(total_paid, symbol, places)}) "
                f"cannot exceed order total ({format_money(grand_total, symbol, places)})"
            ),
            details={
                "previous_total": str(previous_total),
                "current_total": str(current_total),
                "grand_total": str(grand_total),
                "tolerance": str(settings.payment_tolerance),
            },
        ))

    return errors


def validate_customer(customer: CustomerDetails) -> list[FieldError]:
    """Contact details required on invoice forms."""
    errors: list[FieldError] = []
    required = (
        ("firstName", customer.first_name, "First name is required"),
        ("lastName", customer.last_name, "Last name is required"),
        ("phone", customer.phone, "Phone number is required"),
        ("email", customer.email, "Email is required"),
    )
    for field_name, value, message in required:
        if not value.strip():
            errors.append(FieldError(
                field=field_name,
                kind=ErrorKind.CUSTOMER_FIELD_REQUIRED,
                message=message,
            ))

    email = customer.email.strip()
    if email and not _EMAIL_PATTERN.match(email):
        errors.append(FieldError(
            field="email",
            kind=ErrorKind.CUSTOMER_EMAIL_INVALID,
            message="Please enter a valid email address",
        ))
    return errors


# ============================================================================
# Aggregate
# ============================================================================


@traced_engine(
    "submission_validation", "1.0",
    fingerprint_fields=("lines", "current_payments", "grand_total", "previous_payments"),
)
def validate_submission(
    lines: Sequence[OrderLine],
    current_payments: Sequence[PaymentEntry],
    grand_total: Decimal,
    previous_payments: Sequence[PaymentEntry] = (),
    customer: CustomerDetails | None = None,
    require_items: bool | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> ValidationResult:
    """
    Run every submit-time check and collect the errors.

    Pure function - identical inputs always yield identical results.

    Args:
        lines: Resolved product and service lines
        current_payments: Rows being submitted
        grand_total: Order grand total (subtotal + charges)
        previous_payments: Persisted payments
        customer: Contact details, checked when given
        require_items: Override ``settings.require_items``
        settings: Engine settings (tolerance, currency symbol)

    Returns:
        ValidationResult; valid when no errors were found
    """
    if require_items is None:
        require_items = settings.require_items

    errors: list[FieldError] = []
    if customer is not None:
        errors.extend(validate_customer(customer))
    errors.extend(validate_item_presence(lines, require_items))
    errors.extend(validate_lines(lines))
    errors.extend(validate_payments(current_payments, grand_total, previous_payments, settings))

    result = ValidationResult.from_errors(errors)

    if result.is_valid:
        logger.info("submission_validated", extra={
            "line_count": len(lines),
            "payment_count": len(current_payments),
            "grand_total": str(grand_total),
        })
    else:
        logger.info("submission_rejected", extra={
            "error_count": len(result.errors),
            "codes": result.codes(),
        })
    return result
