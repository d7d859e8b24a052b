"""
Payment Reconciliation Engine.

Pure functions with deterministic behavior. No I/O.

Works over two payment lists:

- previous payments: immutable records already persisted with the order
- current payments: the rows being edited before submission

Every field edit is a total-state-in, total-state-out recomputation. The
only automatic derivations are on status changes:

- ``full``    -> amount becomes whatever is left to pay for this row,
                 i.e. the remaining balance with this row's own amount
                 added back. Repeating it yields the same amount.
- ``partial`` -> amount resets to 0; partial amounts are typed by hand.

Amount edits never rewrite the amount; they only attach or clear the
"exceeds remaining balance" error on that row's amount field.

Usage:
    from invoice_engines.payments import compute_remaining, on_status_change

    row = on_status_change(
        entry=row,
        new_status="full",
        current_payments=rows,
        grand_total=Decimal("100.00"),
        previous_payments=previous,
    )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal

from invoice_kernel.domain.order import PaymentEntry, PaymentMethod, PaymentStatus
from invoice_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from invoice_kernel.domain.values import (
    ZERO,
    amount_or_zero,
    format_money,
    round_money,
    sum_amounts,
)
from invoice_kernel.exceptions import PaymentEntryNotFoundError
from invoice_kernel.logging_config import get_logger
from invoice_engines.tracer import traced_engine
from invoice_engines.validation_types import (
    ErrorKind,
    FieldError,
    payment_amount_field,
)

logger = get_logger("engines.payments")

# Fields an operator can edit on a payment row
EDITABLE_FIELDS = ("method", "status", "amount", "note")


@dataclass(frozen=True)
class AmountChange:
    """Outcome of an amount edit: the updated row and the row's field errors."""

    entry: PaymentEntry
    errors: Mapping[str, FieldError] = field(default_factory=dict)
    field_error: FieldError | None = None


# ============================================================================
# Balances
# ============================================================================


def sum_payments(payments: Iterable[PaymentEntry]) -> Decimal:
    """Sum payment amounts; unset or unparseable amounts count as zero."""
    return sum_amounts(p.amount for p in payments)


def compute_remaining(
    grand_total: Decimal,
    previous_payments: Iterable[PaymentEntry],
    current_payments: Iterable[PaymentEntry],
    excluding: str | None = None,
) -> Decimal:
    """
    Remaining balance after previous and current payments.

    Pure function. Unset or unparseable amounts count as zero. The current
    payment identified by ``excluding`` is left out, which gives "how much
    room is left for that row".

    Args:
        grand_total: Order grand total (subtotal + charges)
        previous_payments: Persisted payments
        current_payments: Rows being edited
        excluding: entry_id of a current row to leave out

    Returns:
        Unrounded remaining balance (may be negative when overpaid)
    """
    paid = sum_payments(previous_payments)
    for entry in current_payments:
        if excluding is not None and entry.entry_id == excluding:
            continue
        paid += amount_or_zero(entry.amount)
    return grand_total - paid


def available_for_entry(
    entry: PaymentEntry,
    current_payments: Sequence[PaymentEntry],
    grand_total: Decimal,
    previous_payments: Sequence[PaymentEntry],
) -> Decimal:
    """Balance this row may take: the remaining balance with its own amount added back.

    Computed by leaving the row out of the sum, so the result does not
    depend on which copy of the row (pre- or post-edit) the list holds.
    """
    return compute_remaining(
        grand_total, previous_payments, current_payments, excluding=entry.entry_id
    )


def is_order_settled(previous_payments: Iterable[PaymentEntry]) -> bool:
    """An order with any previous ``full`` payment is settled and not editable."""
    return any(p.status is PaymentStatus.FULL for p in previous_payments)


# ============================================================================
# Field edits
# ============================================================================


@traced_engine(
    "payment_reconciliation", "1.0",
    fingerprint_fields=("entry", "new_status", "grand_total"),
)
def on_status_change(
    entry: PaymentEntry,
    new_status: PaymentStatus | str | None,
    current_payments: Sequence[PaymentEntry],
    grand_total: Decimal,
    previous_payments: Sequence[PaymentEntry] = (),
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PaymentEntry:
    """
    Apply a status change to a payment row.

    Pure function.

    ``full`` sets the amount to the balance available to this row, rounded
    to ``settings.money_places``. ``partial`` sets it to 0. An empty or
    unrecognised status only clears the status.

    Returns:
        The updated PaymentEntry
    """
    status = PaymentStatus.parse(new_status)

    if status is PaymentStatus.FULL:
        available = available_for_entry(
            entry, current_payments, grand_total, previous_payments
        )
        amount = str(round_money(available, settings.money_places))
        logger.debug("payment_status_full", extra={
            "entry_id": entry.entry_id,
            "previous_amount": entry.amount,
            "amount": amount,
        })
        return replace(entry, status=status, amount=amount)

    if status is PaymentStatus.PARTIAL:
        logger.debug("payment_status_partial", extra={
            "entry_id": entry.entry_id,
            "previous_amount": entry.amount,
        })
        return replace(entry, status=status, amount="0")

    return replace(entry, status=None)


@traced_engine(
    "payment_reconciliation", "1.0",
    fingerprint_fields=("entry", "new_amount_text", "grand_total"),
)
def on_amount_change(
    entry: PaymentEntry,
    new_amount_text: str,
    current_payments: Sequence[PaymentEntry],
    grand_total: Decimal,
    previous_payments: Sequence[PaymentEntry] = (),
    errors: Mapping[str, FieldError] | None = None,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> AmountChange:
    """
    Apply an amount edit to a payment row and re-check it against the balance.

    Pure function.

    The text is stored as typed. When it parses to a positive amount larger
    than the balance available to this row (computed from the row's amount
    *before* the edit), the row's amount field gets a
    PAYMENT_EXCEEDS_BALANCE error. Otherwise any error on that field is
    cleared: typing replaces a stale "invalid amount" report too. Errors on
    other fields are left untouched.

    Args:
        entry: Row being edited, with its pre-edit amount
        new_amount_text: Raw text typed by the operator
        current_payments: All rows, including ``entry`` with its pre-edit amount
        grand_total: Order grand total
        previous_payments: Persisted payments
        errors: Current field-keyed errors shown on the form

    Returns:
        AmountChange with the updated row and the updated error map
    """
    updated = replace(entry, amount=new_amount_text)
    index = _index_of(current_payments, entry.entry_id)
    field_name = payment_amount_field(index)
    next_errors = dict(errors or {})
    next_errors.pop(field_name, None)

    parsed = updated.parsed_amount
    field_error: FieldError | None = None
    if parsed is not None and parsed > ZERO:
        available = available_for_entry(
            entry, current_payments, grand_total, previous_payments
        )
        if parsed > available:
            field_error = FieldError(
                field=field_name,
                kind=ErrorKind.PAYMENT_EXCEEDS_BALANCE,
                message=(
                    "Payment amount cannot exceed remaining balance of "
                    f"{format_money(available, settings.currency_symbol, settings.money_places)}"
                ),
                details={
                    "entry_id": entry.entry_id,
                    "amount": str(parsed),
                    "available": str(round_money(available, settings.money_places)),
                },
            )
            next_errors[field_name] = field_error
            logger.info("payment_amount_exceeds_balance", extra={
                "entry_id": entry.entry_id,
                "amount": str(parsed),
                "available": str(available),
            })

    return AmountChange(entry=updated, errors=next_errors, field_error=field_error)


def _index_of(current_payments: Sequence[PaymentEntry], entry_id: str) -> int:
    for i, p in enumerate(current_payments):
        if p.entry_id == entry_id:
            return i
    raise PaymentEntryNotFoundError(entry_id)


# ============================================================================
# Payment rows
# ============================================================================


def new_payment_entry(
    entry_id: str,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> PaymentEntry:
    """A fresh row: default method and status, amount unset."""
    return PaymentEntry(
        entry_id=entry_id,
        method=settings.default_payment_method,
        status=settings.default_payment_status,
        amount="",
        note="",
    )


def add_payment_row(
    current_payments: Sequence[PaymentEntry],
    entry_id: str,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> tuple[PaymentEntry, ...]:
    """Append a fresh row."""
    return (*current_payments, new_payment_entry(entry_id, settings))


def remove_payment_row(
    current_payments: Sequence[PaymentEntry],
    entry_id: str,
    replacement_id: str,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> tuple[PaymentEntry, ...]:
    """
    Remove a row. The last remaining row is reset to defaults instead.

    Raises:
        PaymentEntryNotFoundError: No row has ``entry_id``
    """
    _index_of(current_payments, entry_id)
    if len(current_payments) > 1:
        return tuple(p for p in current_payments if p.entry_id != entry_id)
    return (new_payment_entry(replacement_id, settings),)


def replace_payment(
    current_payments: Sequence[PaymentEntry],
    updated: PaymentEntry,
) -> tuple[PaymentEntry, ...]:
    """Swap in an updated row, matched by entry_id."""
    _index_of(current_payments, updated.entry_id)
    return tuple(
        updated if p.entry_id == updated.entry_id else p
        for p in current_payments
    )


def update_payment_field(
    current_payments: Sequence[PaymentEntry],
    entry_id: str,
    field_name: str,
    value: str,
    grand_total: Decimal,
    previous_payments: Sequence[PaymentEntry] = (),
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> tuple[PaymentEntry, ...]:
    """
    Apply one field edit to one row and return the new row list.

    Status edits go through ``on_status_change``. Method, note and amount
    edits never touch the amount derivation.

    Raises:
        PaymentEntryNotFoundError: No row has ``entry_id``
        UnknownPaymentMethodError: ``method`` value is not accepted
        ValueError: ``field_name`` is not an editable field
    """
    entry = current_payments[_index_of(current_payments, entry_id)]

    if field_name == "status":
        updated = on_status_change(
            entry, value, current_payments, grand_total, previous_payments, settings
        )
    elif field_name == "amount":
        updated = replace(entry, amount=value)
    elif field_name == "method":
        updated = replace(entry, method=PaymentMethod.parse(value))
    elif field_name == "note":
        updated = replace(entry, note=value)
    else:
        raise ValueError(
            f"Unknown payment field: {field_name!r} (expected one of {EDITABLE_FIELDS})"
        )

    return replace_payment(current_payments, updated)
